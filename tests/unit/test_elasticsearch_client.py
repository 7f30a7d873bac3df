"""Elasticsearch 客户端单元测试

测试 literature/services/search/elasticsearch.py 的重连、参数转换和错误包装，
以及 errors.is_retryable_error。
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from elasticsearch import ApiError, ConnectionError, ConnectionTimeout

from literature.services.search import (
    ClientState,
    ElasticsearchClient,
    SearchBackendError,
    close_elasticsearch_client,
    elasticsearch_context,
    get_elasticsearch_client,
    is_retryable_error,
)


def make_es(healthy: bool = True) -> MagicMock:
    """模拟 AsyncElasticsearch"""
    es = MagicMock()
    es.options.return_value.ping = AsyncMock(return_value=healthy)
    es.close = AsyncMock()
    es.search = AsyncMock(return_value={"hits": {"total": {"value": 0}, "hits": []}})
    es.open_point_in_time = AsyncMock(return_value={"id": "pit-1"})
    es.close_point_in_time = AsyncMock(return_value={"succeeded": True})
    return es


def api_error(status: int) -> ApiError:
    return ApiError("error", meta=SimpleNamespace(status=status), body={})


class TestReconnect:
    """测试按需重连"""

    @pytest.mark.asyncio
    async def test_healthy_client_is_reused(self):
        """探测成功时复用现有连接"""
        es = make_es()
        factory = MagicMock(return_value=es)
        client = ElasticsearchClient(client_factory=factory, connect_timeout=1.5)

        assert await client.get_client() is es
        assert await client.get_client() is es

        factory.assert_called_once()
        es.options.assert_called_with(request_timeout=1.5)
        assert client.state == ClientState.HEALTHY

    @pytest.mark.asyncio
    async def test_failed_probe_replaces_client(self):
        """探测失败时替换连接并关闭旧连接"""
        stale, fresh = make_es(healthy=False), make_es()
        client = ElasticsearchClient(client_factory=MagicMock(side_effect=[stale, fresh]))

        assert await client.get_client() is fresh

        stale.close.assert_awaited_once()
        assert client.state == ClientState.HEALTHY

    @pytest.mark.asyncio
    async def test_ping_exception_counts_as_failure(self):
        """探测抛异常视为失败"""
        stale, fresh = make_es(), make_es()
        stale.options.return_value.ping.side_effect = ConnectionError("refused")
        client = ElasticsearchClient(client_factory=MagicMock(side_effect=[stale, fresh]))

        assert await client.get_client() is fresh

    @pytest.mark.asyncio
    async def test_stale_close_failure_is_tolerated(self):
        """旧连接关闭失败不影响重连"""
        stale, fresh = make_es(healthy=False), make_es()
        stale.close.side_effect = RuntimeError("already closed")
        client = ElasticsearchClient(client_factory=MagicMock(side_effect=[stale, fresh]))

        assert await client.get_client() is fresh

    @pytest.mark.asyncio
    async def test_still_unavailable_raises_retryable(self):
        """重连后仍不可用时抛出可重试错误"""
        client = ElasticsearchClient(
            client_factory=MagicMock(side_effect=[make_es(healthy=False), make_es(healthy=False)])
        )

        with pytest.raises(SearchBackendError) as exc_info:
            await client.get_client()

        assert exc_info.value.retryable is True
        assert client.state == ClientState.RECONNECTING

    @pytest.mark.asyncio
    async def test_close(self):
        """关闭后再次使用会重新创建连接"""
        first, second = make_es(), make_es()
        client = ElasticsearchClient(client_factory=MagicMock(side_effect=[first, second]))

        await client.connect()
        await client.close()

        first.close.assert_awaited_once()
        assert await client.get_client() is second


class TestOperations:
    """测试检索和快照操作"""

    @pytest.mark.asyncio
    async def test_search_translates_body_keys(self):
        """from/_source 转为客户端参数名"""
        es = make_es()
        client = ElasticsearchClient(client_factory=MagicMock(return_value=es))

        await client.search({"query": {"match_all": {}}, "from": 20, "size": 10, "_source": ["title"]}, index="lit")

        es.search.assert_awaited_once_with(
            query={"match_all": {}}, from_=20, size=10, source=["title"], index="lit"
        )

    @pytest.mark.asyncio
    async def test_search_with_pit_omits_index(self):
        """绑定快照的请求不指定索引"""
        es = make_es()
        client = ElasticsearchClient(client_factory=MagicMock(return_value=es))

        await client.search({"pit": {"id": "pit-1", "keep_alive": "1m"}, "size": 10}, index="lit")

        assert "index" not in es.search.await_args.kwargs

    @pytest.mark.asyncio
    async def test_search_error_is_wrapped(self):
        """ES 异常转换为 SearchBackendError"""
        es = make_es()
        es.search.side_effect = api_error(400)
        client = ElasticsearchClient(client_factory=MagicMock(return_value=es))

        with pytest.raises(SearchBackendError) as exc_info:
            await client.search({"size": 1}, index="lit")

        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, ApiError)

    @pytest.mark.asyncio
    async def test_point_in_time(self):
        """打开和释放快照"""
        es = make_es()
        client = ElasticsearchClient(client_factory=MagicMock(return_value=es))

        pit_id = await client.open_point_in_time("lit", keep_alive="2m")
        await client.close_point_in_time(pit_id)

        assert pit_id == "pit-1"
        es.open_point_in_time.assert_awaited_once_with(index="lit", keep_alive="2m")
        es.close_point_in_time.assert_awaited_once_with(id="pit-1")


class TestRetryableErrors:
    """测试可重试判断"""

    @pytest.mark.parametrize("status", [429, 502, 503, 504])
    def test_transient_status_codes(self, status):
        assert is_retryable_error(api_error(status)) is True

    @pytest.mark.parametrize("status", [400, 404, 500])
    def test_permanent_status_codes(self, status):
        assert is_retryable_error(api_error(status)) is False

    def test_connection_failures(self):
        assert is_retryable_error(ConnectionError("refused")) is True
        assert is_retryable_error(ConnectionTimeout("timed out")) is True

    def test_other_errors(self):
        assert is_retryable_error(ValueError("bad")) is False


class TestLifecycle:
    """测试连接生命周期"""

    @pytest.mark.asyncio
    async def test_ping(self):
        """ping 反映探测结果"""
        healthy = ElasticsearchClient(client_factory=MagicMock(return_value=make_es()))
        down = ElasticsearchClient(client_factory=MagicMock(return_value=make_es(healthy=False)))

        assert await healthy.ping() is True
        assert await down.ping() is False

    @pytest.mark.asyncio
    async def test_global_client_singleton(self):
        """全局客户端只创建一次，关闭后重新创建"""
        first = ElasticsearchClient(client_factory=MagicMock(return_value=make_es()))
        second = ElasticsearchClient(client_factory=MagicMock(return_value=make_es()))

        with patch(
            "literature.services.search.elasticsearch.create_elasticsearch_client",
            side_effect=[first, second],
        ):
            assert await get_elasticsearch_client() is first
            assert await get_elasticsearch_client() is first
            await close_elasticsearch_client()
            assert await get_elasticsearch_client() is second
            await close_elasticsearch_client()

    @pytest.mark.asyncio
    async def test_context_closes_client(self):
        """上下文退出时关闭连接"""
        es = make_es()
        client = ElasticsearchClient(client_factory=MagicMock(return_value=es))

        with patch("literature.services.search.elasticsearch.create_elasticsearch_client", return_value=client):
            async with elasticsearch_context() as ctx:
                assert ctx is client
                await ctx.search({"size": 1}, index="lit")

        es.close.assert_awaited_once()
