"""查询构建器

提供流式 API 构建 Elasticsearch 查询 DSL，以及构建单个查询子句的辅助函数。

使用示例:
    ```python
    from literature.services.search.query import QueryBuilder, range_query, terms_query

    body = (QueryBuilder()
        .must({"multi_match": {"query": "pollinators", "fields": ["title", "abstract"]}})
        .filter_query(terms_query("topics", ["ECOLOGY", "MARINE"]))
        .filter_query(range_query("year", gte=2010, lte=2020))
        .aggregate("literatureType", {"terms": {"field": "literatureType", "size": 10}})
        .paginate(offset=0, limit=20)
        .build())
    ```
"""

from __future__ import annotations

from typing import Any, Self

# ============== 查询子句 ==============


def match_all_query() -> dict[str, Any]:
    return {"match_all": {}}


def term_query(field: str, value: Any) -> dict[str, Any]:
    """term 查询（精确匹配）"""
    return {"term": {field: value}}


def terms_query(field: str, values: list[Any]) -> dict[str, Any]:
    """terms 查询（多值精确匹配，OR 语义）"""
    return {"terms": {field: values}}


def range_query(
    field: str,
    gte: Any = None,
    lte: Any = None,
    format_: str | None = None,
) -> dict[str, Any]:
    """range 查询，None 的一端为开放区间

    Args:
        field: 字段名
        gte: 大于等于
        lte: 小于等于
        format_: 日期格式

    Returns:
        查询字典
    """
    range_spec: dict[str, Any] = {}
    if gte is not None:
        range_spec["gte"] = gte
    if lte is not None:
        range_spec["lte"] = lte
    if format_:
        range_spec["format"] = format_
    return {"range": {field: range_spec}}


def nested_query(path: str, query: dict[str, Any]) -> dict[str, Any]:
    """nested 查询，把子查询限定在子文档路径下（不参与评分）"""
    return {"nested": {"path": path, "query": query, "score_mode": "none"}}


def bool_filter_query(queries: list[dict[str, Any]]) -> dict[str, Any]:
    """把多个子句组合为 filter 上下文的 bool 查询（AND 语义）"""
    return {"bool": {"filter": list(queries)}}


# ============== 查询 DSL 构建 ==============


class QueryBuilder:
    """Elasticsearch 查询构建器

    提供流式 API 构建 Elasticsearch 查询 DSL。
    """

    def __init__(self) -> None:
        """初始化查询构建器"""
        self._must: list[dict[str, Any]] = []
        self._filter: list[dict[str, Any]] = []
        self._post_filter: dict[str, Any] | None = None
        self._aggregations: dict[str, dict[str, Any]] = {}
        self._sort: list[dict[str, Any]] = []
        self._highlight: dict[str, Any] | None = None
        self._source: bool | list[str] | dict[str, Any] | None = None
        self._size: int | None = None
        self._from_: int = 0
        self._track_total_hits: bool | int = True
        self._pit: dict[str, Any] | None = None
        self._search_after: list[Any] | None = None

    # ============== 布尔查询 ==============

    def must(self, query: dict[str, Any]) -> Self:
        """添加 MUST 子句（必须匹配，参与评分）

        Args:
            query: 查询 DSL

        Returns:
            self
        """
        self._must.append(query)
        return self

    def filter_query(self, query: dict[str, Any]) -> Self:
        """添加 FILTER 子句（过滤，不计分）

        Args:
            query: 查询 DSL

        Returns:
            self
        """
        self._filter.append(query)
        return self

    def term(self, field: str, value: Any) -> Self:
        """添加 term 过滤"""
        return self.filter_query(term_query(field, value))

    def post_filter(self, query: dict[str, Any] | None) -> Self:
        """设置 post_filter（聚合之后再过滤命中结果）"""
        self._post_filter = query
        return self

    @property
    def has_clauses(self) -> bool:
        return bool(self._must or self._filter)

    # ============== 排序 ==============

    def sorts(self, sort_specs: list[dict[str, Any]]) -> Self:
        """批量添加排序"""
        self._sort.extend(sort_specs)
        return self

    # ============== 分页 ==============

    def size(self, size: int) -> Self:
        self._size = size
        return self

    def paginate(self, offset: int, limit: int) -> Self:
        """按 offset/limit 设置分页

        Args:
            offset: 偏移量
            limit: 返回数量

        Returns:
            self
        """
        self._from_ = offset
        self._size = limit
        return self

    def point_in_time(self, pit_id: str, keep_alive: str = "1m") -> Self:
        """绑定 point-in-time 快照（此时请求不能再指定索引）"""
        self._pit = {"id": pit_id, "keep_alive": keep_alive}
        return self

    def search_after(self, values: list[Any] | None) -> Self:
        """从上一页最后一条的排序值之后继续"""
        self._search_after = list(values) if values else None
        return self

    # ============== 高亮 ==============

    def highlight(
        self,
        fields: list[str] | dict[str, Any],
        pre_tags: list[str] | None = None,
        post_tags: list[str] | None = None,
        fragment_size: int = 0,
        number_of_fragments: int = 0,
    ) -> Self:
        """配置高亮

        默认 ``number_of_fragments=0``，返回整段高亮文本，便于直接替换原字段。

        Args:
            fields: 字段列表或字段配置
            pre_tags: 前置标签
            post_tags: 后置标签
            fragment_size: 片段大小
            number_of_fragments: 片段数量

        Returns:
            self
        """
        self._highlight = {
            "fields": {},
            "fragment_size": fragment_size,
            "number_of_fragments": number_of_fragments,
        }

        if pre_tags:
            self._highlight["pre_tags"] = pre_tags
        if post_tags:
            self._highlight["post_tags"] = post_tags

        if isinstance(fields, dict):
            self._highlight["fields"] = fields
        else:
            for field in fields:
                self._highlight["fields"][field] = {}

        return self

    # ============== 返回字段 ==============

    def source(
        self,
        includes: list[str] | None = None,
        excludes: list[str] | None = None,
    ) -> Self:
        """配置返回字段

        Args:
            includes: 包含字段
            excludes: 排除字段

        Returns:
            self
        """
        if includes and excludes:
            self._source = {"includes": includes, "excludes": excludes}
        elif includes:
            self._source = includes
        elif excludes:
            self._source = {"excludes": excludes}
        else:
            self._source = False

        return self

    # ============== 聚合 ==============

    def aggregate(self, name: str, spec: dict[str, Any]) -> Self:
        """添加聚合

        Args:
            name: 聚合名称
            spec: 聚合 DSL，例如 ``{"terms": {"field": "topics", "size": 10}}``

        Returns:
            self
        """
        self._aggregations[name] = spec
        return self

    # ============== 构建 ==============

    def build_query_only(self) -> dict[str, Any]:
        """仅构建查询部分，没有任何子句时返回 match_all

        Returns:
            查询字典
        """
        if not self.has_clauses:
            return match_all_query()

        bool_query: dict[str, Any] = {}
        if self._must:
            bool_query["must"] = self._must
        if self._filter:
            bool_query["filter"] = self._filter
        return {"bool": bool_query}

    def build(self) -> dict[str, Any]:
        """构建查询 DSL

        Returns:
            请求体字典
        """
        body: dict[str, Any] = {"query": self.build_query_only()}

        if self._post_filter:
            body["post_filter"] = self._post_filter
        if self._aggregations:
            body["aggs"] = self._aggregations
        if self._sort:
            body["sort"] = self._sort
        if self._highlight:
            body["highlight"] = self._highlight
        if self._source is not None:
            body["_source"] = self._source
        if self._size is not None:
            body["size"] = self._size
        if self._from_ > 0:
            body["from"] = self._from_
        if self._pit:
            body["pit"] = self._pit
        if self._search_after:
            body["search_after"] = self._search_after
        body["track_total_hits"] = self._track_total_hits

        return body
