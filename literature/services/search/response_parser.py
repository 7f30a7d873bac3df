"""检索响应解析

把 ES 原始响应转换为 SearchResponse：命中交给 SearchResultConverter，
聚合按分面分页转换为 Facet 列表。
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from literature.observability.logging import get_logger
from literature.schemas.search import (
    Facet,
    FacetCount,
    LiteratureSearchRequest,
    PagingResponse,
    SearchResponse,
)
from literature.services.search.converter import SearchResultConverter
from literature.services.search.field_mapper import EsFieldMapper
from literature.services.search.request_builder import INNER_AGGREGATION
from literature.services.search.utils import extract_facet_limit, extract_facet_offset

logger = get_logger(__name__)

T = TypeVar("T")
P = TypeVar("P")


def get_hits(es_response: dict[str, Any]) -> list[dict[str, Any]]:
    return (es_response.get("hits") or {}).get("hits") or []


def get_total(es_response: dict[str, Any]) -> int:
    """命中总数，兼容 ``{"value": n}`` 和旧版的整数写法"""
    total = (es_response.get("hits") or {}).get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


def get_buckets(name: str, aggregation: dict[str, Any]) -> list[dict[str, Any]]:
    """取出 terms 聚合的桶

    多选分面的 filter 聚合和嵌套字段的 nested 聚合都把 terms 聚合包在 ``inner`` 里，
    逐层进入直到找到桶。

    Raises:
        ValueError: 聚合结构无法识别
    """
    while "buckets" not in aggregation:
        inner = aggregation.get(INNER_AGGREGATION)
        if not isinstance(inner, dict):
            raise ValueError(f"aggregation {name} is not supported")
        aggregation = inner
    return aggregation["buckets"]


class EsResponseParser(Generic[T, P]):
    """ES 响应解析器"""

    def __init__(self, converter: SearchResultConverter[T], field_mapper: EsFieldMapper[P]) -> None:
        self._converter = converter
        self._field_mapper = field_mapper

    def build_get_response(self, es_response: dict[str, Any]) -> T | None:
        """按 ID 获取的响应，没有命中返回 None"""
        hits = get_hits(es_response)
        if not hits:
            return None
        return self._converter.to_result(hits[0])

    def build_search_response(
        self,
        es_response: dict[str, Any],
        request: LiteratureSearchRequest,
    ) -> SearchResponse:
        """构建分面检索响应

        Args:
            es_response: ES 原始响应
            request: 发送给 ES 的请求（offset/limit 与之保持一致）

        Returns:
            SearchResponse
        """
        return SearchResponse(
            offset=request.offset,
            limit=request.limit,
            count=get_total(es_response),
            results=self._parse_hits(es_response, request.highlight),
            facets=self.parse_facets(es_response.get("aggregations"), request),
        )

    def build_paging_response(
        self,
        es_response: dict[str, Any],
        request: LiteratureSearchRequest,
    ) -> PagingResponse:
        """构建不带分面的分页响应（导出用）"""
        return PagingResponse(
            offset=request.offset,
            limit=request.limit,
            count=get_total(es_response),
            results=self._parse_hits(es_response, highlight=False),
        )

    def _parse_hits(self, es_response: dict[str, Any], highlight: bool) -> list[T]:
        return [self._converter.to_result(hit, highlight=highlight) for hit in get_hits(es_response)]

    def parse_facets(
        self,
        aggregations: dict[str, Any] | None,
        request: LiteratureSearchRequest,
    ) -> list[Facet]:
        """把聚合转换为分面

        跳过前 offset 个桶，最多保留 limit 个（ES 端的聚合大小已经限制过）。
        """
        if not aggregations:
            return []

        facets = []
        for name, aggregation in aggregations.items():
            facet = self._field_mapper.get_param(name)
            if facet is None:
                logger.debug("unknown_aggregation_skipped", aggregation=name)
                continue

            offset = extract_facet_offset(request, facet)
            limit = extract_facet_limit(request, facet)
            buckets = get_buckets(name, aggregation)[offset : offset + limit]

            counts = [
                FacetCount(name=str(b.get("key_as_string", b.get("key"))), count=b.get("doc_count", 0))
                for b in buckets
            ]
            facets.append(Facet(field=facet, counts=counts))

        return facets
