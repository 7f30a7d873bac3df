"""测试配置"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from literature.services.search import (
    EsResponseParser,
    EsSearchRequestBuilder,
    LiteratureEsFieldMapper,
    LiteratureSearchResultConverter,
    LiteratureSearchService,
)


def make_hit(source: dict[str, Any], sort: list[Any] | None = None, highlight: dict | None = None) -> dict:
    """构造一个 ES 命中"""
    hit: dict[str, Any] = {"_index": "literature", "_source": source}
    if sort is not None:
        hit["sort"] = sort
    if highlight is not None:
        hit["highlight"] = highlight
    return hit


def make_response(
    hits: list[dict[str, Any]] | None = None,
    total: int | None = None,
    aggregations: dict[str, Any] | None = None,
    pit_id: str | None = None,
) -> dict[str, Any]:
    """构造一个 ES 检索响应"""
    hits = hits or []
    response: dict[str, Any] = {
        "took": 1,
        "timed_out": False,
        "hits": {
            "total": {"value": len(hits) if total is None else total, "relation": "eq"},
            "hits": hits,
        },
    }
    if aggregations is not None:
        response["aggregations"] = aggregations
    if pit_id is not None:
        response["pit_id"] = pit_id
    return response


@pytest.fixture
def field_mapper():
    """文献字段映射"""
    return LiteratureEsFieldMapper()


@pytest.fixture
def request_builder(field_mapper):
    """请求构建器"""
    return EsSearchRequestBuilder(field_mapper)


@pytest.fixture
def converter():
    """命中转换器"""
    return LiteratureSearchResultConverter()


@pytest.fixture
def response_parser(converter, field_mapper):
    """响应解析器"""
    return EsResponseParser(converter, field_mapper)


@pytest.fixture
def es_client():
    """模拟的 ElasticsearchClient"""
    client = MagicMock()
    client.search = AsyncMock(return_value=make_response())
    client.open_point_in_time = AsyncMock(return_value="pit-1")
    client.close_point_in_time = AsyncMock(return_value=None)
    return client


@pytest.fixture
def service(es_client, request_builder, response_parser):
    """检索服务"""
    return LiteratureSearchService(
        client=es_client,
        index="literature",
        max_result_window=100_000,
        request_builder=request_builder,
        response_parser=response_parser,
        pit_keep_alive="1m",
    )


@pytest.fixture(name="make_hit")
def make_hit_fixture():
    """命中构造函数"""
    return make_hit


@pytest.fixture(name="make_response")
def make_response_fixture():
    """响应构造函数"""
    return make_response
