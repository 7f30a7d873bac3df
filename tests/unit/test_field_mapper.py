"""字段映射单元测试"""

import pytest

from literature.schemas import LiteratureSearchParameter as P
from literature.services.search.field_mapper import (
    LITERATURE_FIELD_MAPPING,
    LiteratureEsFieldMapper,
)


class DuplicateFieldMapper(LiteratureEsFieldMapper):
    def __init__(self, mapping) -> None:
        super(LiteratureEsFieldMapper, self).__init__(mapping)


class TestLiteratureEsFieldMapper:
    """测试文献字段映射"""

    def test_mapping_is_bijective(self, field_mapper):
        """参数与字段一一对应"""
        for param, field in LITERATURE_FIELD_MAPPING:
            assert field_mapper.get_field(param) == field
            assert field_mapper.get_param(field) == param

    def test_every_parameter_is_mapped(self, field_mapper):
        assert all(field_mapper.get_field(p) is not None for p in P)

    def test_special_fields(self, field_mapper):
        """DOI 在 identifiers 子文档中，published/added 对应日期字段"""
        assert field_mapper.get_field(P.DOI) == "identifiers.doi"
        assert field_mapper.nested_path("identifiers.doi") == "identifiers"
        assert field_mapper.nested_path("year") is None
        assert field_mapper.get_field(P.PUBLISHED) == "created"
        assert field_mapper.is_date_field("createdAt")
        assert not field_mapper.is_date_field("year")

    def test_unknown_field(self, field_mapper):
        assert field_mapper.get_param("all") is None
        assert field_mapper.get_cardinality("source") is None
        assert field_mapper.get_cardinality("peerReview") == 2

    def test_duplicate_parameter_rejected(self):
        """重复的参数在构造时报错"""
        with pytest.raises(ValueError, match="duplicate search parameter"):
            DuplicateFieldMapper([(P.YEAR, "year"), (P.YEAR, "published")])

    def test_duplicate_field_rejected(self):
        """重复的字段在构造时报错"""
        with pytest.raises(ValueError, match="duplicate ES field"):
            DuplicateFieldMapper([(P.YEAR, "year"), (P.PUBLISHED, "year")])


class TestLiteratureSearchParameter:
    """测试检索参数"""

    def test_lookup(self):
        """按枚举名或参数名查找"""
        assert P.lookup("COUNTRIES_OF_COVERAGE") is P.COUNTRIES_OF_COVERAGE
        assert P.lookup("countriesOfCoverage") is P.COUNTRIES_OF_COVERAGE
        assert P.lookup("doi") is P.DOI
        assert P.lookup("nope") is None

    def test_range_support(self):
        """只有整数和日期参数支持区间"""
        assert P.YEAR.kind.supports_range
        assert P.ADDED.kind.supports_range
        assert not P.SOURCE.kind.supports_range
