"""文献检索服务

串联请求构建、ES 执行和响应解析：

    Idle -> Compiling -> Executing -> Materializing -> Done
                 \\            \\
                  +------------+--> Failed

任何阶段都不自动重试。编译错误（SearchRequestError）在调用 ES 之前抛出，
ES 调用失败以 SearchBackendError 抛出。

使用示例:
    ```python
    from literature.services.search import create_literature_search_service

    service = await create_literature_search_service()
    response = await service.search(
        LiteratureSearchRequest(q="pollinators", facets={LiteratureSearchParameter.TOPICS})
    )
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from literature.observability.logging import configure_logging, get_logger
from literature.schemas.search import (
    LiteratureSearchRequest,
    LiteratureSearchResult,
    SearchResponse,
)
from literature.services.search.converter import LiteratureSearchResultConverter
from literature.services.search.elasticsearch import ElasticsearchClient, get_elasticsearch_client
from literature.services.search.errors import LiteratureSearchError
from literature.services.search.field_mapper import LiteratureEsFieldMapper
from literature.services.search.pager import LiteraturePager
from literature.services.search.request_builder import EsSearchRequestBuilder
from literature.services.search.response_parser import EsResponseParser

logger = get_logger(__name__)


class SearchState(str, Enum):
    """单次检索的执行阶段"""

    IDLE = "idle"
    COMPILING = "compiling"
    EXECUTING = "executing"
    MATERIALIZING = "materializing"
    DONE = "done"
    FAILED = "failed"


class LiteratureSearchService:
    """文献检索服务

    服务本身无状态，可以被并发调用；状态只存在于单次调用内部。
    """

    def __init__(
        self,
        client: ElasticsearchClient,
        index: str,
        max_result_window: int,
        request_builder: EsSearchRequestBuilder | None = None,
        response_parser: EsResponseParser | None = None,
        pit_keep_alive: str = "1m",
        export_page_limit: int = 300,
    ):
        """初始化检索服务

        Args:
            client: Elasticsearch 客户端
            index: 索引名称
            max_result_window: offset + limit 的上限，超过时截断 offset
            request_builder: 请求构建器
            response_parser: 响应解析器
            pit_keep_alive: 导出时快照的续期时间
            export_page_limit: 导出的默认页大小
        """
        field_mapper = LiteratureEsFieldMapper()
        self.client = client
        self.index = index
        self.max_result_window = max_result_window
        self.pit_keep_alive = pit_keep_alive
        self.export_page_limit = export_page_limit
        self.request_builder = request_builder or EsSearchRequestBuilder(field_mapper)
        self.response_parser = response_parser or EsResponseParser(
            LiteratureSearchResultConverter(), field_mapper
        )

    @staticmethod
    def _transition(state: SearchState, operation: str, **kwargs: Any) -> SearchState:
        logger.debug("search_state", operation=operation, state=state.value, **kwargs)
        return state

    async def search(self, request: LiteratureSearchRequest) -> SearchResponse:
        """分面检索

        ``offset + limit`` 超过 max_result_window 时，发送给 ES 的 offset 被截断为
        ``max_result_window - limit``，返回结果中的 offset 仍是调用方传入的值。

        Args:
            request: 检索请求（不会被修改）

        Returns:
            SearchResponse

        Raises:
            SearchRequestError: 请求无法编译
            SearchBackendError: ES 调用失败
        """
        offset = request.offset
        es_request = request
        offset_exceeded = request.offset + request.limit > self.max_result_window
        if offset_exceeded:
            clamped = max(0, self.max_result_window - request.limit)
            es_request = request.model_copy(update={"offset": clamped})
            logger.info("offset_clamped", requested=offset, clamped=clamped, limit=request.limit)

        state = self._transition(SearchState.COMPILING, "search")
        try:
            body = self.request_builder.build_search_request(es_request, facets_enabled=True)
            state = self._transition(SearchState.EXECUTING, "search")
            es_response = await self.client.search(body, index=self.index)
        except LiteratureSearchError as e:
            self._transition(SearchState.FAILED, "search", failed_in=state.value, error=str(e))
            raise

        self._transition(SearchState.MATERIALIZING, "search")
        response = self.response_parser.build_search_response(es_response, es_request)
        if offset_exceeded:
            response.offset = offset

        self._transition(SearchState.DONE, "search", count=response.count)
        return response

    async def get(self, key: Any) -> LiteratureSearchResult | None:
        """按 ID 获取文献

        Args:
            key: 文献 ID

        Returns:
            文献，不存在时返回 None
        """
        state = self._transition(SearchState.COMPILING, "get")
        try:
            body = self.request_builder.build_get_request(key)
            state = self._transition(SearchState.EXECUTING, "get")
            es_response = await self.client.search(body, index=self.index)
        except LiteratureSearchError as e:
            self._transition(SearchState.FAILED, "get", failed_in=state.value, error=str(e))
            raise

        self._transition(SearchState.MATERIALIZING, "get")
        result = self.response_parser.build_get_response(es_response)
        self._transition(SearchState.DONE, "get", found=result is not None)
        return result

    async def export_search(
        self,
        request: LiteratureSearchRequest,
        search_after: list[Any] | None,
        pit_id: str,
        keep_alive: str | None = None,
    ) -> dict[str, Any]:
        """导出用的单页检索（绑定快照，从 search_after 之后继续）

        Args:
            request: 检索请求，limit 为页大小
            search_after: 上一页最后一条的排序值，第一页为 None
            pit_id: 快照 ID
            keep_alive: 快照续期时间，默认使用服务的配置

        Returns:
            ES 原始响应（由 LiteraturePager 解析）
        """
        state = self._transition(SearchState.COMPILING, "export")
        try:
            body = self.request_builder.build_export_request(
                request, search_after, pit_id, keep_alive=keep_alive or self.pit_keep_alive
            )
            state = self._transition(SearchState.EXECUTING, "export")
            es_response = await self.client.search(body)
        except LiteratureSearchError as e:
            self._transition(SearchState.FAILED, "export", failed_in=state.value, error=str(e))
            raise

        self._transition(SearchState.DONE, "export")
        return es_response

    def create_pager(self, request: LiteratureSearchRequest) -> LiteraturePager:
        """为一次导出创建分页器"""
        return LiteraturePager(self, request)


async def create_literature_search_service(client: ElasticsearchClient | None = None) -> LiteratureSearchService:
    """按配置创建检索服务

    Args:
        client: Elasticsearch 客户端，默认使用全局单例

    Returns:
        LiteratureSearchService 实例
    """
    from literature.config import get_settings

    settings = get_settings()
    configure_logging(settings.environment.value, settings.log_level, settings.log_format)

    field_mapper = LiteratureEsFieldMapper()
    return LiteratureSearchService(
        client=client or await get_elasticsearch_client(),
        index=settings.elasticsearch_index,
        max_result_window=settings.max_result_window,
        request_builder=EsSearchRequestBuilder(field_mapper, strict_parameters=settings.strict_parameters),
        response_parser=EsResponseParser(LiteratureSearchResultConverter(), field_mapper),
        pit_keep_alive=settings.pit_keep_alive,
        export_page_limit=settings.export_page_limit,
    )
