"""文献检索模块

提供基于 Elasticsearch 的文献分面检索和导出分页。

模块结构:
- elasticsearch: Elasticsearch 客户端封装
- field_mapper: 检索参数与 ES 字段的映射
- query: 查询构建器
- request_builder: 检索请求构建（参数分组、查询、聚合）
- converter: 命中转换
- response_parser: 响应解析
- pager: 基于快照的导出分页
- service: 检索服务
"""

from literature.services.search.converter import LiteratureSearchResultConverter, SearchResultConverter
from literature.services.search.elasticsearch import (
    ClientState,
    ElasticsearchClient,
    close_elasticsearch_client,
    elasticsearch_context,
    get_elasticsearch_client,
)
from literature.services.search.errors import (
    LiteratureSearchError,
    SearchBackendError,
    SearchRequestError,
    is_retryable_error,
)
from literature.services.search.field_mapper import EsFieldMapper, LiteratureEsFieldMapper
from literature.services.search.pager import LiteraturePager
from literature.services.search.query import QueryBuilder
from literature.services.search.request_builder import EsSearchRequestBuilder, GroupedParams
from literature.services.search.response_parser import EsResponseParser
from literature.services.search.service import (
    LiteratureSearchService,
    SearchState,
    create_literature_search_service,
)

__all__ = [
    # Elasticsearch 客户端
    "ClientState",
    "ElasticsearchClient",
    "get_elasticsearch_client",
    "close_elasticsearch_client",
    "elasticsearch_context",
    # 错误
    "LiteratureSearchError",
    "SearchRequestError",
    "SearchBackendError",
    "is_retryable_error",
    # 请求构建
    "EsFieldMapper",
    "LiteratureEsFieldMapper",
    "QueryBuilder",
    "EsSearchRequestBuilder",
    "GroupedParams",
    # 响应解析
    "SearchResultConverter",
    "LiteratureSearchResultConverter",
    "EsResponseParser",
    # 检索服务
    "LiteratureSearchService",
    "LiteraturePager",
    "SearchState",
    "create_literature_search_service",
]
