"""检索命中转换

把 ES 命中的 _source 按字段逐个提取并转换为 LiteratureSearchResult。
每个字段单独容错：缺失、为空或类型不对的字段保持为 None，只记录日志，不影响其他字段。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from literature.observability.logging import get_logger
from literature.schemas.search import LiteratureSearchResult
from literature.schemas.vocabulary import (
    GbifRegion,
    LiteratureTopic,
    LiteratureType,
    Relevance,
    country_code,
    language_code,
    lookup_enum,
)
from literature.services.search.field_mapper import NESTED_SEPARATOR
from literature.services.search.utils import parse_date

logger = get_logger(__name__)

T = TypeVar("T")

Extractor = Callable[[Any], Any]


class SearchResultConverter(ABC, Generic[T]):
    """把 ES 命中转换为具体的结果对象"""

    @abstractmethod
    def to_result(self, hit: dict[str, Any], highlight: bool = False) -> T:
        """转换单个命中

        Args:
            hit: ES 命中（包含 _source，可能包含 highlight）
            highlight: 是否用高亮片段替换原字段

        Returns:
            结果对象
        """


# ============== 取值转换 ==============


def to_string(value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise TypeError(f"expected a scalar, got {type(value).__name__}")
    return str(value)


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text not in ("true", "false"):
        raise ValueError(f"{value!r} is not a boolean")
    return text == "true"


def to_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value!r} is not an integer")
        return int(value)
    return int(str(value).strip())


def to_date(value: Any) -> datetime | None:
    if isinstance(value, bool):
        raise TypeError("boolean is not a date")
    if isinstance(value, (int, float)):
        # epoch_millis
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return parse_date(str(value))


def to_uuid(value: Any) -> UUID:
    return UUID(str(value))


def to_enum(enum_cls: type[Enum]) -> Extractor:
    return lambda value: lookup_enum(enum_cls, to_string(value))


def to_country(value: Any) -> str:
    return country_code(to_string(value))


def to_language(value: Any) -> str:
    return language_code(to_string(value))


def to_map(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"expected an object, got {type(value).__name__}")
    return value


def list_of(item: Extractor) -> Extractor:
    def extract(value: Any) -> list[Any]:
        if not isinstance(value, list):
            raise TypeError(f"expected a list, got {type(value).__name__}")
        return [item(v) for v in value]

    return extract


def set_of(item: Extractor) -> Extractor:
    def extract(value: Any) -> set[Any]:
        return set(list_of(item)(value))

    return extract


# (结果字段, ES 字段, 转换函数)
LITERATURE_FIELDS: tuple[tuple[str, str, Extractor], ...] = (
    ("id", "id", to_uuid),
    ("title", "title", to_string),
    ("abstract", "abstract", to_string),
    ("authors", "authors", list_of(to_map)),
    ("identifiers", "identifiers", to_map),
    ("keywords", "keywords", list_of(to_string)),
    ("websites", "websites", list_of(to_string)),
    ("tags", "tags", list_of(to_string)),
    ("source", "source", to_string),
    ("publisher", "publisher", to_string),
    ("notes", "notes", to_string),
    ("accessed", "accessed", to_string),
    ("content_type", "contentType", to_string),
    ("user_context", "userContext", to_string),
    ("citation_key", "citationKey", to_string),
    ("year", "year", to_integer),
    ("month", "month", to_integer),
    ("day", "day", to_integer),
    ("created", "created", to_date),
    ("created_at", "createdAt", to_date),
    ("updated_at", "updatedAt", to_date),
    ("authored", "authored", to_boolean),
    ("confirmed", "confirmed", to_boolean),
    ("file_attached", "fileAttached", to_boolean),
    ("hidden", "hidden", to_boolean),
    ("open_access", "openAccess", to_boolean),
    ("peer_review", "peerReview", to_boolean),
    ("private_publication", "privatePublication", to_boolean),
    ("read", "read", to_boolean),
    ("searchable", "searchable", to_boolean),
    ("starred", "starred", to_boolean),
    ("country", "country", to_country),
    ("countries_of_coverage", "countriesOfCoverage", set_of(to_country)),
    ("countries_of_researcher", "countriesOfResearcher", set_of(to_country)),
    ("language", "language", to_language),
    ("literature_type", "literatureType", to_enum(LiteratureType)),
    ("relevance", "relevance", set_of(to_enum(Relevance))),
    ("topics", "topics", set_of(to_enum(LiteratureTopic))),
    ("gbif_region", "gbifRegion", set_of(to_enum(GbifRegion))),
    ("group_id", "groupId", to_uuid),
    ("profile_id", "profileId", to_uuid),
    ("gbif_dataset_key", "gbifDatasetKey", list_of(to_uuid)),
    ("publishing_organization_key", "publishingOrganizationKey", list_of(to_uuid)),
    ("gbif_download_key", "gbifDownloadKey", list_of(to_string)),
)

HIGHLIGHT_FIELDS = ("title", "abstract")


def get_value(fields: dict[str, Any], es_field: str, extractor: Extractor) -> Any:
    """提取并转换单个字段

    带 ``.`` 的字段会先逐层进入子对象，最后一段作为字段名。
    空值（None、空字符串、空列表）和转换失败都返回 None。
    """
    field_name = es_field
    if NESTED_SEPARATOR in es_field:
        *paths, field_name = es_field.split(NESTED_SEPARATOR)
        for path in paths:
            sub = fields.get(path)
            if not isinstance(sub, dict):
                return None
            fields = sub

    value = fields.get(field_name)
    if value is None or value == "" or value == []:
        return None

    try:
        return extractor(value)
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning("field_extraction_failed", field=es_field, value=repr(value), error=str(e))
        return None


class LiteratureSearchResultConverter(SearchResultConverter[LiteratureSearchResult]):
    """文献命中转换器"""

    def to_result(self, hit: dict[str, Any], highlight: bool = False) -> LiteratureSearchResult:
        fields = hit.get("_source") or {}

        values: dict[str, Any] = {}
        for name, es_field, extractor in LITERATURE_FIELDS:
            value = get_value(fields, es_field, extractor)
            if value is not None:
                values[name] = value

        if highlight:
            highlights = hit.get("highlight") or {}
            for name in HIGHLIGHT_FIELDS:
                fragments = highlights.get(name)
                if fragments:
                    values[name] = fragments[0]

        return LiteratureSearchResult(**values)
