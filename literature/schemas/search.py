"""文献检索模式

定义分面检索请求、检索结果和分面统计的模型。
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from literature.schemas.parameters import LiteratureSearchParameter
from literature.schemas.vocabulary import GbifRegion, LiteratureTopic, LiteratureType, Relevance

# 全文检索中表示"全部"的通配符
QUERY_WILDCARD = "*"


# ============== 检索请求 ==============


class Pageable(BaseModel):
    """分页参数"""

    offset: int = Field(0, ge=0, description="偏移量")
    limit: int = Field(20, ge=0, description="返回数量")


class LiteratureSearchRequest(BaseModel):
    """文献分面检索请求

    ``parameters`` 中的每个取值可以是字面量，也可以是 ``low,high`` 形式的区间（``*`` 表示开放端），
    区间只对整数和日期类型的参数生效。
    """

    q: str | None = Field(None, description="全文检索词，* 表示全部")
    parameters: dict[LiteratureSearchParameter, set[str]] = Field(default_factory=dict)
    offset: int = Field(0, ge=0, description="偏移量")
    limit: int = Field(20, ge=0, description="返回数量")
    facets: set[LiteratureSearchParameter] = Field(default_factory=set, description="分面列表")
    facet_pages: dict[LiteratureSearchParameter, Pageable] = Field(
        default_factory=dict, description="单个分面的分页"
    )
    facet_offset: int | None = Field(None, ge=0, description="分面偏移量（全局）")
    facet_limit: int | None = Field(None, ge=0, description="分面数量（全局）")
    facet_min_count: int | None = Field(None, ge=0, description="分面最小计数")
    multi_select_facets: bool = Field(False, description="是否启用多选分面")
    highlight: bool = Field(False, description="是否高亮")

    def add_parameter(self, param: LiteratureSearchParameter, *values: Any) -> LiteratureSearchRequest:
        """追加参数取值

        Args:
            param: 检索参数
            *values: 取值，统一转为字符串保存

        Returns:
            self
        """
        self.parameters.setdefault(param, set()).update(str(v) for v in values)
        return self

    def add_facets(self, *facets: LiteratureSearchParameter) -> LiteratureSearchRequest:
        """追加分面

        Returns:
            self
        """
        self.facets.update(facets)
        return self

    def get_facet_page(self, facet: LiteratureSearchParameter) -> Pageable | None:
        return self.facet_pages.get(facet)


# ============== 检索结果 ==============


class LiteratureSearchResult(BaseModel):
    """文献检索结果

    所有字段都是可选的：ES 文档中缺失或类型不正确的字段保持为 None。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: UUID | None = None
    title: str | None = None
    abstract: str | None = None
    authors: list[dict[str, Any]] | None = None
    identifiers: dict[str, Any] | None = None
    keywords: list[str] | None = None
    websites: list[str] | None = None
    tags: list[str] | None = None
    source: str | None = None
    publisher: str | None = None
    notes: str | None = None
    accessed: str | None = None
    content_type: str | None = None
    user_context: str | None = None
    citation_key: str | None = None

    year: int | None = None
    month: int | None = None
    day: int | None = None
    created: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    authored: bool | None = None
    confirmed: bool | None = None
    file_attached: bool | None = None
    hidden: bool | None = None
    open_access: bool | None = None
    peer_review: bool | None = None
    private_publication: bool | None = None
    read: bool | None = None
    searchable: bool | None = None
    starred: bool | None = None

    country: str | None = None
    countries_of_coverage: set[str] | None = None
    countries_of_researcher: set[str] | None = None
    language: str | None = None
    literature_type: LiteratureType | None = None
    relevance: set[Relevance] | None = None
    topics: set[LiteratureTopic] | None = None
    gbif_region: set[GbifRegion] | None = None

    group_id: UUID | None = None
    profile_id: UUID | None = None
    gbif_dataset_key: list[UUID] | None = None
    publishing_organization_key: list[UUID] | None = None
    gbif_download_key: list[str] | None = None


# ============== 分面 ==============


class FacetCount(BaseModel):
    """分面取值计数"""

    name: str = Field(..., description="取值")
    count: int = Field(..., ge=0, description="文档数量")


class Facet(BaseModel):
    """分面结果"""

    field: LiteratureSearchParameter | None = Field(None, description="分面参数")
    counts: list[FacetCount] = Field(default_factory=list)


# ============== 检索响应 ==============


class PagingResponse(BaseModel):
    """分页响应"""

    offset: int = 0
    limit: int = 20
    count: int | None = None
    results: list[LiteratureSearchResult] = Field(default_factory=list)

    @computed_field
    @property
    def end_of_records(self) -> bool:
        """是否已经到达最后一页"""
        if self.count is None:
            return len(self.results) < self.limit
        return self.offset + self.limit >= self.count


class SearchResponse(PagingResponse):
    """分面检索响应"""

    facets: list[Facet] = Field(default_factory=list)
