"""检索请求构建

把分面检索请求编译为 ES 查询 DSL：
- 参数分组：多选分面时，被请求为分面的参数移到 post_filter
- 主查询：全文检索 + 各参数的 term/terms/range/nested 过滤（filter 上下文，AND 组合）
- 聚合：按分面分页和字段基数确定桶数；多选分面时每个分面只受其他分面的过滤影响
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from uuid import UUID

from literature.observability.logging import get_logger
from literature.schemas.parameters import LiteratureSearchParameter, ValueKind
from literature.schemas.search import QUERY_WILDCARD, LiteratureSearchRequest
from literature.schemas.vocabulary import country_code, language_code, lookup_enum
from literature.services.search.errors import SearchRequestError
from literature.services.search.field_mapper import DATE_FORMAT, EsFieldMapper
from literature.services.search.query import (
    QueryBuilder,
    bool_filter_query,
    nested_query,
    range_query,
    term_query,
    terms_query,
)
from literature.services.search.utils import (
    MAX_SIZE_TERMS_AGGS,
    extract_facet_limit,
    extract_facet_offset,
    parse_date,
)

logger = get_logger(__name__)

P = TypeVar("P", bound=LiteratureSearchParameter)

RANGE_SEPARATOR = ","
RANGE_WILDCARD = "*"

# 多选分面时，被过滤聚合包裹的 terms 聚合名
INNER_AGGREGATION = "inner"


@dataclass(frozen=True)
class GroupedParams(Generic[P]):
    """参数分组结果

    Attributes:
        query_params: 进入主查询的参数
        post_filter_params: 进入 post_filter 和分面隔离的参数
    """

    query_params: dict[P, set[str]]
    post_filter_params: dict[P, set[str]] = field(default_factory=dict)


class EsSearchRequestBuilder(Generic[P]):
    """ES 检索请求构建器

    所有方法都不修改输入，可以被多个请求并发使用。
    """

    def __init__(self, field_mapper: EsFieldMapper[P], strict_parameters: bool = False) -> None:
        """初始化构建器

        Args:
            field_mapper: 字段映射
            strict_parameters: 为 True 时未映射的参数抛出 SearchRequestError
        """
        self._field_mapper = field_mapper
        self._strict_parameters = strict_parameters

    # ============== 请求 ==============

    def build_search_request(
        self,
        request: LiteratureSearchRequest,
        facets_enabled: bool = True,
    ) -> dict[str, Any]:
        """构建检索请求

        Args:
            request: 分面检索请求
            facets_enabled: 是否构建分面聚合

        Returns:
            请求体字典

        Raises:
            SearchRequestError: 请求无法编译
        """
        grouped = self.group_parameters(request)

        builder = QueryBuilder()
        builder.source(
            includes=self._field_mapper.include_fields(),
            excludes=self._field_mapper.exclude_fields(),
        )
        builder.paginate(request.offset, request.limit)
        builder.sorts(self._field_mapper.default_sort())
        self._apply_query(builder, grouped.query_params, request.q)

        if grouped.post_filter_params:
            builder.post_filter(self.build_post_filter(grouped.post_filter_params))

        if facets_enabled and request.facets:
            for name, spec in self.build_aggregations(request, grouped).items():
                builder.aggregate(name, spec)

        if request.highlight and _has_text(request.q):
            builder.highlight(self._field_mapper.highlight_fields())

        return builder.build()

    def build_get_request(self, key: Any) -> dict[str, Any]:
        """构建按 ID 获取的请求"""
        return (
            QueryBuilder()
            .term("id", str(key))
            .source(
                includes=self._field_mapper.include_fields(),
                excludes=self._field_mapper.exclude_fields(),
            )
            .size(1)
            .build()
        )

    def build_export_request(
        self,
        request: LiteratureSearchRequest,
        search_after: list[Any] | None,
        pit_id: str,
        keep_alive: str = "1m",
    ) -> dict[str, Any]:
        """构建导出分页请求（point-in-time + search_after）

        导出时没有分面，所有参数都进入主查询，from 固定为 0。

        Args:
            request: 检索请求，只使用 limit 作为页大小
            search_after: 上一页最后一条的排序值
            pit_id: 快照 ID
            keep_alive: 快照续期时间

        Returns:
            请求体字典
        """
        builder = QueryBuilder()
        builder.source(
            includes=self._field_mapper.include_fields(),
            excludes=self._field_mapper.exclude_fields(),
        )
        builder.size(request.limit)
        builder.sorts(self._field_mapper.default_sort())
        builder.point_in_time(pit_id, keep_alive)
        builder.search_after(search_after)
        self._apply_query(builder, request.parameters, request.q)
        return builder.build()

    # ============== 参数分组 ==============

    def group_parameters(self, request: LiteratureSearchRequest) -> GroupedParams[P]:
        """按分面拆分参数

        未启用多选分面或没有请求分面时，所有参数都进入主查询。
        """
        if not request.multi_select_facets or not request.facets:
            return GroupedParams(query_params=dict(request.parameters))

        query_params: dict[P, set[str]] = {}
        post_filter_params: dict[P, set[str]] = {}
        for param, values in request.parameters.items():
            if param in request.facets:
                post_filter_params[param] = values
            else:
                query_params[param] = values

        return GroupedParams(query_params=query_params, post_filter_params=post_filter_params)

    # ============== 查询 ==============

    def build_query(self, params: dict[P, set[str]], q: str | None) -> dict[str, Any]:
        """构建主查询，没有全文检索也没有过滤时返回 match_all"""
        builder = QueryBuilder()
        self._apply_query(builder, params, q)
        return builder.build_query_only()

    def build_post_filter(self, params: dict[P, set[str]]) -> dict[str, Any] | None:
        """构建 post_filter，所有参数 AND 组合"""
        queries = list(self._build_param_queries(params).values())
        if not queries:
            return None
        return bool_filter_query(queries)

    def _apply_query(self, builder: QueryBuilder, params: dict[P, set[str]], q: str | None) -> None:
        if _has_text(q):
            builder.must(self._field_mapper.full_text_query(q))

        for query in self._build_param_queries(params).values():
            builder.filter_query(query)

    def _build_param_queries(self, params: dict[P, set[str]]) -> dict[P, dict[str, Any]]:
        """每个参数编译为一个查询，参数内多个取值为 OR"""
        queries: dict[P, dict[str, Any]] = {}
        for param in sorted(params, key=lambda p: p.name):
            es_field = self._field_mapper.get_field(param)
            if es_field is None:
                if self._strict_parameters:
                    raise SearchRequestError(f"search parameter {param.name} is not supported")
                logger.debug("unmapped_parameter_skipped", parameter=param.name)
                continue

            clauses: list[dict[str, Any]] = []
            literals: list[Any] = []
            for raw in sorted(params[param]):
                if param.kind.supports_range and RANGE_SEPARATOR in raw:
                    clauses.append(self._build_range_query(es_field, raw))
                    continue
                value = self._parse_value(param, raw)
                if value is not None and value not in literals:
                    literals.append(value)

            if len(literals) == 1:
                clauses.append(term_query(es_field, literals[0]))
            elif literals:
                clauses.append(terms_query(es_field, literals))

            if not clauses:
                continue

            query = clauses[0] if len(clauses) == 1 else {"bool": {"should": clauses, "minimum_should_match": 1}}
            if nested_path := self._field_mapper.nested_path(es_field):
                # 对嵌套字段直接做 term 查询永远匹配不到
                query = nested_query(nested_path, query)
            queries[param] = query

        return queries

    def _build_range_query(self, es_field: str, raw: str) -> dict[str, Any]:
        """把 ``low,high`` 编译为 range 查询，``*`` 表示开放端"""
        tokens = raw.split(RANGE_SEPARATOR)
        if len(tokens) != 2:
            raise SearchRequestError(f"malformed range {raw!r} for {es_field}")

        is_date = self._field_mapper.is_date_field(es_field)
        bounds = [self._parse_range_bound(es_field, token.strip(), is_date) for token in tokens]
        return range_query(es_field, gte=bounds[0], lte=bounds[1], format_=DATE_FORMAT if is_date else None)

    @staticmethod
    def _parse_range_bound(es_field: str, token: str, is_date: bool) -> Any:
        if token == RANGE_WILDCARD:
            return None
        try:
            if is_date:
                if parse_date(token) is None:
                    raise ValueError("empty date")
                return token
            return int(token)
        except ValueError as e:
            raise SearchRequestError(f"malformed range bound {token!r} for {es_field}") from e

    @staticmethod
    def _parse_value(param: P, raw: str) -> Any:
        """按参数类型解析字面量，无法解析的取值返回 None"""
        value = raw.strip()
        try:
            match param.kind:
                case ValueKind.ENUM:
                    return lookup_enum(param.vocabulary, value).name
                case ValueKind.COUNTRY:
                    return country_code(value)
                case ValueKind.LANGUAGE:
                    return language_code(value)
                case ValueKind.BOOLEAN:
                    return value.lower()
                case ValueKind.INTEGER:
                    return int(value)
                case ValueKind.UUID:
                    return str(UUID(value))
                case _:
                    return value
        except ValueError as e:
            logger.warning("parameter_value_dropped", parameter=param.name, value=raw, error=str(e))
            return None

    # ============== 聚合 ==============

    def build_aggregations(
        self,
        request: LiteratureSearchRequest,
        grouped: GroupedParams[P],
    ) -> dict[str, dict[str, Any]]:
        """构建分面聚合，聚合名为 ES 字段名

        嵌套字段的 terms 聚合包在 nested 聚合里；多选分面时再包一层只含其他分面过滤的 filter 聚合。
        被包裹的聚合统一命名为 ``inner``。

        Raises:
            SearchRequestError: 分面分页超过 MAX_SIZE_TERMS_AGGS
        """
        if not request.facets:
            return {}

        isolate = request.multi_select_facets and len(request.facets) > 1 and bool(grouped.post_filter_params)
        post_filter_queries = self._build_param_queries(grouped.post_filter_params) if isolate else {}

        aggregations: dict[str, dict[str, Any]] = {}
        for facet in sorted(request.facets, key=lambda p: p.name):
            es_field = self._field_mapper.get_field(facet)
            if es_field is None:
                logger.debug("unmapped_facet_skipped", facet=facet.name)
                continue

            aggregation = self._build_terms_aggregation(request, facet, es_field)
            if nested_path := self._field_mapper.nested_path(es_field):
                aggregation = {"nested": {"path": nested_path}, "aggs": {INNER_AGGREGATION: aggregation}}

            other_filters = [query for param, query in post_filter_queries.items() if param != facet]
            if other_filters:
                aggregations[es_field] = {
                    "filter": bool_filter_query(other_filters),
                    "aggs": {INNER_AGGREGATION: aggregation},
                }
            else:
                aggregations[es_field] = aggregation

        return aggregations

    def _build_terms_aggregation(self, request: LiteratureSearchRequest, facet: P, es_field: str) -> dict[str, Any]:
        offset = extract_facet_offset(request, facet)
        limit = extract_facet_limit(request, facet)

        cardinality = self._field_mapper.get_cardinality(es_field)
        size = min(offset + limit, cardinality if cardinality is not None else sys.maxsize)
        if size > MAX_SIZE_TERMS_AGGS:
            raise SearchRequestError(
                f"facet paging for {facet.name} exceeds the maximum allowed of {MAX_SIZE_TERMS_AGGS}"
            )

        terms: dict[str, Any] = {"field": es_field, "size": size}
        if request.facet_min_count is not None:
            terms["min_doc_count"] = request.facet_min_count
        return {"terms": terms}


def _has_text(q: str | None) -> bool:
    return bool(q and q.strip()) and q.strip() != QUERY_WILDCARD
