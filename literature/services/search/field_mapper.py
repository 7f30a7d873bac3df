"""检索参数与 ES 字段映射

参数到字段的映射是一个双射，在映射器构造时校验（字段或参数重复直接报错），
不会拖到查询时才发现配置问题。未映射的参数在查询编译时被忽略。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from literature.schemas.parameters import LiteratureSearchParameter
from literature.schemas.vocabulary import (
    COUNTRY_CARDINALITY,
    GbifRegion,
    LiteratureTopic,
    LiteratureType,
    Relevance,
)

P = TypeVar("P")

# 嵌套字段路径分隔符
NESTED_SEPARATOR = "."


class EsFieldMapper(ABC, Generic[P]):
    """检索参数与 ES 字段的映射

    Args:
        mapping: (参数, 字段名) 对的静态表
    """

    def __init__(self, mapping: Iterable[tuple[P, str]]) -> None:
        self._param_to_field: dict[P, str] = {}
        self._field_to_param: dict[str, P] = {}
        for param, field in mapping:
            if param in self._param_to_field:
                raise ValueError(f"duplicate search parameter in field mapping: {param}")
            if field in self._field_to_param:
                raise ValueError(f"duplicate ES field in field mapping: {field}")
            self._param_to_field[param] = field
            self._field_to_param[field] = param

    def get_field(self, param: P) -> str | None:
        """参数 -> ES 字段名，未映射返回 None"""
        return self._param_to_field.get(param)

    def get_param(self, field: str) -> P | None:
        """ES 字段名 -> 参数，未映射返回 None"""
        return self._field_to_param.get(field)

    @staticmethod
    def nested_path(field: str) -> str | None:
        """嵌套字段所在的子文档路径，例如 ``identifiers.doi`` -> ``identifiers``"""
        if NESTED_SEPARATOR not in field:
            return None
        return field.rsplit(NESTED_SEPARATOR, 1)[0]

    @abstractmethod
    def get_cardinality(self, field: str) -> int | None:
        """字段取值的基数，未知返回 None"""

    @abstractmethod
    def is_date_field(self, field: str) -> bool:
        """是否为日期字段"""

    @abstractmethod
    def exclude_fields(self) -> list[str]:
        """检索结果中排除的字段"""

    def include_fields(self) -> list[str]:
        """检索结果中包含的字段，空列表表示全部"""
        return []

    @abstractmethod
    def default_sort(self) -> list[dict[str, Any]]:
        """默认排序"""

    def highlight_fields(self) -> list[str]:
        """需要高亮的字段"""
        return []

    @abstractmethod
    def full_text_query(self, q: str) -> dict[str, Any]:
        """全文检索查询"""


# ============== 文献字段映射 ==============

LITERATURE_FIELD_MAPPING: tuple[tuple[LiteratureSearchParameter, str], ...] = (
    (LiteratureSearchParameter.COUNTRIES_OF_RESEARCHER, "countriesOfResearcher"),
    (LiteratureSearchParameter.COUNTRIES_OF_COVERAGE, "countriesOfCoverage"),
    (LiteratureSearchParameter.LITERATURE_TYPE, "literatureType"),
    (LiteratureSearchParameter.RELEVANCE, "relevance"),
    (LiteratureSearchParameter.YEAR, "year"),
    (LiteratureSearchParameter.TOPICS, "topics"),
    (LiteratureSearchParameter.GBIF_DATASET_KEY, "gbifDatasetKey"),
    (LiteratureSearchParameter.PUBLISHING_ORGANIZATION_KEY, "publishingOrganizationKey"),
    (LiteratureSearchParameter.PEER_REVIEW, "peerReview"),
    (LiteratureSearchParameter.OPEN_ACCESS, "openAccess"),
    (LiteratureSearchParameter.GBIF_DOWNLOAD_KEY, "gbifDownloadKey"),
    (LiteratureSearchParameter.DOI, "identifiers.doi"),
    (LiteratureSearchParameter.SOURCE, "source"),
    (LiteratureSearchParameter.PUBLISHER, "publisher"),
    (LiteratureSearchParameter.GBIF_REGION, "gbifRegion"),
    (LiteratureSearchParameter.LANGUAGE, "language"),
    (LiteratureSearchParameter.PUBLISHED, "created"),
    (LiteratureSearchParameter.ADDED, "createdAt"),
)

CARDINALITIES: dict[str, int] = {
    "literatureType": len(LiteratureType),
    "relevance": len(Relevance),
    "topics": len(LiteratureTopic),
    "gbifRegion": len(GbifRegion),
    "peerReview": 2,
    "openAccess": 2,
    "countriesOfResearcher": COUNTRY_CARDINALITY,
    "countriesOfCoverage": COUNTRY_CARDINALITY,
}

DATE_FIELDS = frozenset({"created", "createdAt", "updatedAt"})

# range 查询使用的日期格式，lte 端缺失的部分由 ES 向上取整
DATE_FORMAT = "yyyy||yyyy-MM||yyyy-MM-dd||strict_date_optional_time"

EXCLUDE_FIELDS = ["all"]

INCLUDE_FIELDS = [
    "title",
    "authors",
    "year",
    "source",
    "identifiers",
    "keywords",
    "websites",
    "month",
    "publisher",
    "day",
    "id",
    "created",
    "accessed",
    "tags",
    "read",
    "starred",
    "authored",
    "confirmed",
    "hidden",
    "language",
    "country",
    "notes",
    "abstract",
    "fileAttached",
    "profileId",
    "groupId",
    "updatedAt",
    "citationKey",
    "userContext",
    "privatePublication",
    "literatureType",
    "searchable",
    "createdAt",
    "countriesOfResearcher",
    "countriesOfCoverage",
    "gbifRegion",
    "gbifDatasetKey",
    "publishingOrganizationKey",
    "relevance",
    "topics",
    "gbifDownloadKey",
    "peerReview",
    "openAccess",
    "contentType",
]

FULL_TEXT_FIELDS = [
    "title^10",
    "abstract^5",
    "keywords^4",
    "authors.firstName^2",
    "authors.lastName^3",
    "source^2",
    "publisher",
    "tags",
]


class LiteratureEsFieldMapper(EsFieldMapper[LiteratureSearchParameter]):
    """文献索引的字段映射"""

    def __init__(self) -> None:
        super().__init__(LITERATURE_FIELD_MAPPING)

    def get_cardinality(self, field: str) -> int | None:
        return CARDINALITIES.get(field)

    def is_date_field(self, field: str) -> bool:
        return field in DATE_FIELDS

    def exclude_fields(self) -> list[str]:
        return list(EXCLUDE_FIELDS)

    def include_fields(self) -> list[str]:
        return list(INCLUDE_FIELDS)

    def default_sort(self) -> list[dict[str, Any]]:
        return [
            {"_score": {"order": "desc"}},
            {"createdAt": {"order": "desc", "unmapped_type": "date"}},
        ]

    def highlight_fields(self) -> list[str]:
        return ["title", "abstract"]

    def full_text_query(self, q: str) -> dict[str, Any]:
        """加权 multi_match 与 all 字段的 AND 匹配，二者满足其一即可"""
        return {
            "bool": {
                "should": [
                    {
                        "multi_match": {
                            "query": q,
                            "fields": FULL_TEXT_FIELDS,
                            "type": "best_fields",
                        }
                    },
                    {"match": {"all": {"query": q, "operator": "and"}}},
                ],
                "minimum_should_match": 1,
            }
        }
