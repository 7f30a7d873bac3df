"""文献检索参数

每个检索参数携带一个取值类型标签（``ValueKind``），查询编译和结果解析都按标签分派，
不依赖运行时的类型反射。
"""

from __future__ import annotations

from enum import Enum

from literature.schemas.vocabulary import GbifRegion, LiteratureTopic, LiteratureType, Relevance


class ValueKind(str, Enum):
    """参数取值类型"""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    DATE = "date"
    UUID = "uuid"
    ENUM = "enum"
    COUNTRY = "country"
    LANGUAGE = "language"

    @property
    def supports_range(self) -> bool:
        return self in (ValueKind.INTEGER, ValueKind.DATE)


class LiteratureSearchParameter(Enum):
    """文献检索参数

    取值为对外的参数名，``kind`` 为取值类型，``vocabulary`` 仅对 ENUM 类型有效。
    """

    COUNTRIES_OF_RESEARCHER = ("countriesOfResearcher", ValueKind.COUNTRY)
    COUNTRIES_OF_COVERAGE = ("countriesOfCoverage", ValueKind.COUNTRY)
    LITERATURE_TYPE = ("literatureType", ValueKind.ENUM, LiteratureType)
    RELEVANCE = ("relevance", ValueKind.ENUM, Relevance)
    YEAR = ("year", ValueKind.INTEGER)
    TOPICS = ("topics", ValueKind.ENUM, LiteratureTopic)
    GBIF_DATASET_KEY = ("gbifDatasetKey", ValueKind.UUID)
    PUBLISHING_ORGANIZATION_KEY = ("publishingOrganizationKey", ValueKind.UUID)
    PEER_REVIEW = ("peerReview", ValueKind.BOOLEAN)
    OPEN_ACCESS = ("openAccess", ValueKind.BOOLEAN)
    GBIF_DOWNLOAD_KEY = ("gbifDownloadKey", ValueKind.STRING)
    DOI = ("doi", ValueKind.STRING)
    SOURCE = ("source", ValueKind.STRING)
    PUBLISHER = ("publisher", ValueKind.STRING)
    GBIF_REGION = ("gbifRegion", ValueKind.ENUM, GbifRegion)
    LANGUAGE = ("language", ValueKind.LANGUAGE)
    PUBLISHED = ("published", ValueKind.DATE)
    ADDED = ("added", ValueKind.DATE)

    def __new__(cls, value: str, kind: ValueKind, vocabulary: type[Enum] | None = None):
        obj = object.__new__(cls)
        obj._value_ = value
        obj.kind = kind
        obj.vocabulary = vocabulary
        return obj

    @classmethod
    def lookup(cls, name: str) -> LiteratureSearchParameter | None:
        """按枚举名或参数名查找（不区分大小写），找不到返回 None"""
        normalized = name.strip().upper()
        if normalized in cls.__members__:
            return cls.__members__[normalized]
        for param in cls:
            if param.value.upper() == normalized:
                return param
        return None
