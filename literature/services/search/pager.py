"""导出分页

在 point-in-time 快照上用 search_after 逐页遍历检索结果，快照在遍历结束时释放。
一个 LiteraturePager 只服务一次导出，必须顺序调用，不能在并发任务之间共享。

使用示例:
    ```python
    async with service.create_pager(request) as pager:
        while True:
            page = await pager.next_page()
            write_rows(page.results)
            if page.end_of_records or not page.results:
                break
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from literature.observability.logging import get_logger
from literature.schemas.search import LiteratureSearchRequest, PagingResponse
from literature.services.search.errors import SearchBackendError
from literature.services.search.response_parser import get_hits

if TYPE_CHECKING:
    from literature.services.search.service import LiteratureSearchService

logger = get_logger(__name__)


class LiteraturePager:
    """基于快照的导出分页器"""

    def __init__(
        self,
        service: LiteratureSearchService,
        request: LiteratureSearchRequest,
        index: str | None = None,
        keep_alive: str | None = None,
    ):
        """初始化分页器

        Args:
            service: 检索服务（提供客户端、请求构建和响应解析）
            request: 检索请求，分页参数由 next_page 决定
            index: 打开快照的索引，默认使用服务的索引
            keep_alive: 快照存活时间，默认使用服务的配置
        """
        self.service = service
        self.request = request
        self.index = index or service.index
        self.keep_alive = keep_alive or service.pit_keep_alive
        self._pit_id: str | None = None
        self._search_after: list[Any] | None = None

    @property
    def pit_id(self) -> str | None:
        return self._pit_id

    @property
    def search_after(self) -> list[Any] | None:
        return self._search_after

    async def next_page(self, page_size: int | None = None) -> PagingResponse:
        """获取下一页

        首次调用时打开快照。返回空页或到达最后一页时释放快照并重置状态，
        之后再调用会打开新的快照重新开始。

        页获取失败时异常直接抛出，快照不会释放，依靠 keep_alive 过期；
        需要及时释放时使用 ``async with`` 或调用 close()。

        Args:
            page_size: 页大小，默认使用服务的 export_page_limit

        Returns:
            PagingResponse

        Raises:
            SearchBackendError: ES 调用失败
        """
        page_size = page_size or self.service.export_page_limit
        page_request = self.request.model_copy(update={"offset": 0, "limit": page_size})

        if self._pit_id is None:
            self._pit_id = await self.service.client.open_point_in_time(self.index, self.keep_alive)
            self._search_after = None

        es_response = await self.service.export_search(
            page_request, self._search_after, self._pit_id, keep_alive=self.keep_alive
        )
        page = self.service.response_parser.build_paging_response(es_response, page_request)

        # 快照 ID 可能在每次检索后变化
        self._pit_id = es_response.get("pit_id") or self._pit_id

        hits = get_hits(es_response)
        if not hits or page.end_of_records:
            logger.debug("export_exhausted", returned=len(hits), count=page.count)
            await self.close()
            return page

        self._search_after = hits[-1].get("sort")
        logger.debug("export_page_fetched", returned=len(hits), count=page.count)
        return page

    async def close(self) -> None:
        """释放快照并重置游标，没有持有快照时什么都不做"""
        pit_id, self._pit_id = self._pit_id, None
        self._search_after = None
        if pit_id is not None:
            await self.service.client.close_point_in_time(pit_id)

    async def __aenter__(self) -> LiteraturePager:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            await self.close()
            return

        # 已有异常在传播时，释放失败不能覆盖原始错误
        try:
            await self.close()
        except SearchBackendError as e:
            logger.warning("export_pit_release_failed", error=str(e), cause=exc_type.__name__)
