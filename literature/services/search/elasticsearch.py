"""Elasticsearch 客户端封装

提供带自动重连的异步 Elasticsearch 客户端，支持：
- 检索（查询 DSL 字典直接下发）
- Point-in-time 快照的打开与释放
- 健康探测与按需重连

使用示例:
    ```python
    from literature.services.search.elasticsearch import get_elasticsearch_client

    es = await get_elasticsearch_client()
    response = await es.search({"query": {"match_all": {}}, "size": 10}, index="literature")
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from literature.observability.logging import get_logger
from literature.services.search.errors import SearchBackendError, is_retryable_error

logger = get_logger(__name__)

# 查询 DSL 中与 Python 关键字冲突的键，需要换成客户端的参数名
_BODY_KEY_ALIASES = {"from": "from_", "_source": "source"}


class ClientState(str, Enum):
    """客户端连接状态"""

    HEALTHY = "healthy"
    RECONNECTING = "reconnecting"


def _as_dict(response: Any) -> dict[str, Any]:
    """把 ObjectApiResponse 转为普通字典"""
    body = getattr(response, "body", response)
    return dict(body)


# ============== Elasticsearch 客户端 ==============


class ElasticsearchClient:
    """Elasticsearch 异步客户端封装

    ``get_client()`` 每次都会做一次轻量的 ping，失败时在锁内替换底层连接；
    并发调用方在替换期间等待同一把锁，不会重复创建连接。
    客户端本身的重试被关闭，ES 调用失败统一转换为 SearchBackendError。
    """

    def __init__(
        self,
        hosts: str | list[str] | None = None,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        verify_certs: bool = True,
        request_timeout: float = 30.0,
        connect_timeout: float = 3.0,
        client_factory: Callable[[], AsyncElasticsearch] | None = None,
        **kwargs,
    ):
        """初始化 Elasticsearch 客户端

        Args:
            hosts: Elasticsearch 主机地址，支持多个
            username: 用户名
            password: 密码
            api_key: API Key（替代用户名密码）
            verify_certs: 是否验证证书
            request_timeout: 请求超时（秒）
            connect_timeout: 健康探测超时（秒）
            client_factory: 自定义底层客户端构造函数（测试用）
            **kwargs: 其他 elasticsearch-py 参数
        """
        self.hosts = hosts or ["http://localhost:9200"]
        self.username = username
        self.password = password
        self.api_key = api_key
        self.verify_certs = verify_certs
        self.request_timeout = request_timeout
        self.connect_timeout = connect_timeout
        self._client_factory = client_factory or self._create_client
        self._client: AsyncElasticsearch | None = None
        self._state = ClientState.HEALTHY
        self._lock = asyncio.Lock()
        self._extra_kwargs = kwargs

    @property
    def state(self) -> ClientState:
        return self._state

    def _create_client(self) -> AsyncElasticsearch:
        """创建底层 AsyncElasticsearch 实例"""
        if self.api_key:
            auth = {"api_key": self.api_key}
        elif self.username and self.password:
            auth = {"basic_auth": (self.username, self.password)}
        else:
            auth = {}

        return AsyncElasticsearch(
            hosts=self.hosts,
            verify_certs=self.verify_certs,
            request_timeout=self.request_timeout,
            max_retries=0,
            retry_on_timeout=False,
            **auth,
            **self._extra_kwargs,
        )

    async def connect(self) -> None:
        """建立连接（幂等）"""
        if self._client is not None:
            return

        async with self._lock:
            if self._client is None:
                self._client = self._client_factory()
                logger.info("elasticsearch_connected", hosts=self.hosts)

    async def close(self) -> None:
        """关闭客户端连接"""
        async with self._lock:
            if self._client is not None:
                await self._client.close()
                self._client = None
                logger.info("elasticsearch_closed")

    async def _probe(self, client: AsyncElasticsearch) -> bool:
        """轻量健康探测"""
        try:
            return bool(await client.options(request_timeout=self.connect_timeout).ping())
        except Exception as e:
            logger.warning("elasticsearch_ping_failed", error=str(e))
            return False

    async def get_client(self) -> AsyncElasticsearch:
        """获取可用的底层客户端，探测失败时重建连接

        Raises:
            SearchBackendError: 重建后仍然不可用
        """
        await self.connect()
        current = self._client
        if await self._probe(current):
            return current

        async with self._lock:
            # 其他协程可能已经完成了替换
            if self._client is not current and await self._probe(self._client):
                return self._client

            self._state = ClientState.RECONNECTING
            logger.warning("elasticsearch_reconnecting", hosts=self.hosts)
            stale = self._client
            self._client = self._client_factory()
            try:
                await stale.close()
            except Exception as e:
                logger.warning("elasticsearch_close_stale_failed", error=str(e))

            if not await self._probe(self._client):
                raise SearchBackendError("Elasticsearch is unavailable", retryable=True)

            self._state = ClientState.HEALTHY
            logger.info("elasticsearch_reconnected", hosts=self.hosts)
            return self._client

    async def ping(self) -> bool:
        """检查连接是否正常"""
        await self.connect()
        return await self._probe(self._client)

    # ============== 检索操作 ==============

    async def search(self, body: dict[str, Any], index: str | None = None) -> dict[str, Any]:
        """执行检索

        Args:
            body: 查询 DSL（QueryBuilder.build() 的结果）
            index: 索引名称，body 中带 pit 时忽略

        Returns:
            ES 原始响应字典

        Raises:
            SearchBackendError: ES 调用失败
        """
        params = {_BODY_KEY_ALIASES.get(k, k): v for k, v in body.items()}
        if "pit" not in body:
            params["index"] = index

        client = await self.get_client()
        try:
            response = await client.search(**params)
        except (ApiError, TransportError) as e:
            logger.error("search_failed", index=index, error=str(e))
            raise SearchBackendError(f"search failed: {e}", retryable=is_retryable_error(e)) from e

        result = _as_dict(response)
        logger.debug("search_executed", index=index, hits=len(result.get("hits", {}).get("hits", [])))
        return result

    async def open_point_in_time(self, index: str, keep_alive: str = "1m") -> str:
        """打开 point-in-time 快照

        Args:
            index: 索引名称
            keep_alive: 快照存活时间

        Returns:
            快照 ID
        """
        client = await self.get_client()
        try:
            response = await client.open_point_in_time(index=index, keep_alive=keep_alive)
        except (ApiError, TransportError) as e:
            logger.error("open_pit_failed", index=index, error=str(e))
            raise SearchBackendError(f"open point in time failed: {e}", retryable=is_retryable_error(e)) from e

        pit_id = _as_dict(response)["id"]
        logger.debug("pit_opened", index=index, keep_alive=keep_alive)
        return pit_id

    async def close_point_in_time(self, pit_id: str) -> None:
        """释放 point-in-time 快照

        Args:
            pit_id: 快照 ID
        """
        client = await self.get_client()
        try:
            await client.close_point_in_time(id=pit_id)
        except (ApiError, TransportError) as e:
            logger.error("close_pit_failed", error=str(e))
            raise SearchBackendError(f"close point in time failed: {e}", retryable=is_retryable_error(e)) from e

        logger.debug("pit_closed")


# ============== 全局客户端实例 ==============

_client: ElasticsearchClient | None = None


def create_elasticsearch_client() -> ElasticsearchClient:
    """按配置创建客户端"""
    from literature.config import get_settings

    settings = get_settings()
    return ElasticsearchClient(
        hosts=settings.elasticsearch_hosts,
        username=settings.elasticsearch_username,
        password=settings.elasticsearch_password,
        api_key=settings.elasticsearch_api_key,
        verify_certs=settings.elasticsearch_verify_certs,
        request_timeout=settings.elasticsearch_request_timeout,
        connect_timeout=settings.elasticsearch_connect_timeout,
    )


async def get_elasticsearch_client() -> ElasticsearchClient:
    """获取 Elasticsearch 客户端实例（单例）"""
    global _client

    if _client is None:
        _client = create_elasticsearch_client()
        await _client.connect()

    return _client


async def close_elasticsearch_client() -> None:
    """关闭全局客户端"""
    global _client
    if _client is not None:
        await _client.close()
        _client = None


# ============== 上下文管理器 ==============


@asynccontextmanager
async def elasticsearch_context() -> AsyncIterator[ElasticsearchClient]:
    """Elasticsearch 上下文管理器

    Yields:
        按配置创建的 ElasticsearchClient 实例
    """
    client = create_elasticsearch_client()
    try:
        await client.connect()
        yield client
    finally:
        await client.close()
