"""文献检索 API 模式"""

from literature.schemas.parameters import LiteratureSearchParameter, ValueKind
from literature.schemas.search import (
    QUERY_WILDCARD,
    Facet,
    FacetCount,
    LiteratureSearchRequest,
    LiteratureSearchResult,
    Pageable,
    PagingResponse,
    SearchResponse,
)
from literature.schemas.vocabulary import GbifRegion, LiteratureTopic, LiteratureType, Relevance

__all__ = [
    "QUERY_WILDCARD",
    "LiteratureSearchParameter",
    "ValueKind",
    "LiteratureSearchRequest",
    "LiteratureSearchResult",
    "Pageable",
    "PagingResponse",
    "SearchResponse",
    "Facet",
    "FacetCount",
    "LiteratureType",
    "Relevance",
    "LiteratureTopic",
    "GbifRegion",
]
