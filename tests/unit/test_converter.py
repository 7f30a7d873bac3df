"""命中转换单元测试

测试 literature/services/search/converter.py 与 utils.parse_date。
"""

from datetime import datetime, timezone
from uuid import UUID

import pytest

from literature.schemas import GbifRegion, LiteratureTopic, LiteratureType, Relevance
from literature.services.search.converter import get_value, to_boolean, to_integer
from literature.services.search.utils import parse_date

LITERATURE_ID = "5a6f3b8e-1f2c-4d4e-9a55-0c1d2e3f4a5b"
DATASET_KEY = "b1047888-ae52-4179-9dd5-5448ea342a24"


class TestParseDate:
    """测试历史日期格式解析"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2020", datetime(2020, 1, 1, tzinfo=timezone.utc)),
            ("2020-03", datetime(2020, 3, 1, tzinfo=timezone.utc)),
            ("2020-03-15", datetime(2020, 3, 15, tzinfo=timezone.utc)),
            ("2020-03-15T10:20", datetime(2020, 3, 15, 10, 20, tzinfo=timezone.utc)),
            ("2020-03-15T10:20:30", datetime(2020, 3, 15, 10, 20, 30, tzinfo=timezone.utc)),
            ("2020-03-15T10:20:30.5Z", datetime(2020, 3, 15, 10, 20, 30, 500000, tzinfo=timezone.utc)),
            ("2020-03-15T10:20:30.123456789Z", datetime(2020, 3, 15, 10, 20, 30, 123456, tzinfo=timezone.utc)),
            ("2020-03-15T12:20:30+02:00", datetime(2020, 3, 15, 10, 20, 30, tzinfo=timezone.utc)),
            ("2020-03-15T12:20:30 +02:00", datetime(2020, 3, 15, 10, 20, 30, tzinfo=timezone.utc)),
        ],
    )
    def test_supported_formats(self, value, expected):
        """支持的日期格式"""
        assert parse_date(value) == expected

    def test_year_zero_is_first_year(self):
        """年份 0000 表示公元 1 年"""
        parsed = parse_date("0000-06-01")
        assert (parsed.year, parsed.month, parsed.day) == (1, 6, 1)

    def test_empty_is_none(self):
        """空值返回 None"""
        assert parse_date(None) is None
        assert parse_date("  ") is None

    @pytest.mark.parametrize("value", ["yesterday", "2020-13", "2020/03/15"])
    def test_invalid_raises(self, value):
        """无法解析时抛出 ValueError"""
        with pytest.raises(ValueError):
            parse_date(value)


class TestExtractors:
    """测试字段取值"""

    def test_boolean_accepts_strings(self):
        """布尔值接受字符串"""
        assert to_boolean("TRUE") is True
        assert to_boolean(False) is False
        with pytest.raises(ValueError):
            to_boolean("yes")

    def test_integer_rejects_fractions(self):
        """整数不接受小数"""
        assert to_integer("2020") == 2020
        assert to_integer(3.0) == 3
        with pytest.raises(ValueError):
            to_integer(3.5)

    def test_nested_path(self):
        """带 . 的字段逐层取值"""
        fields = {"identifiers": {"doi": "10.1000/xyz"}}

        assert get_value(fields, "identifiers.doi", str) == "10.1000/xyz"
        assert get_value(fields, "identifiers.isbn", str) is None
        assert get_value({"identifiers": "flat"}, "identifiers.doi", str) is None

    def test_empty_values_are_absent(self):
        """None、空字符串、空列表都视为缺失"""
        assert get_value({"a": None}, "a", str) is None
        assert get_value({"a": ""}, "a", str) is None
        assert get_value({"a": []}, "a", list) is None


class TestLiteratureSearchResultConverter:
    """测试文献命中转换"""

    def test_typed_fields(self, converter, make_hit):
        """各类型字段转换"""
        hit = make_hit(
            {
                "id": LITERATURE_ID,
                "title": "Pollinators in decline",
                "authors": [{"firstName": "Ada", "lastName": "Lovelace"}],
                "identifiers": {"doi": "10.1000/xyz"},
                "keywords": ["bees", "pollination"],
                "year": 2020,
                "month": "3",
                "created": "2020-03-15",
                "createdAt": 1584230400000,
                "peerReview": True,
                "openAccess": "false",
                "countriesOfCoverage": ["DE", "fra"],
                "country": "GB",
                "language": "en",
                "literatureType": "journal",
                "relevance": ["GBIF_USED", "GBIF_CITED"],
                "topics": ["ECOLOGY"],
                "gbifRegion": ["EUROPE"],
                "gbifDatasetKey": [DATASET_KEY],
                "gbifDownloadKey": ["0001234-200221144449610"],
                "all": "should not be read",
            }
        )

        result = converter.to_result(hit)

        assert result.id == UUID(LITERATURE_ID)
        assert result.title == "Pollinators in decline"
        assert result.authors == [{"firstName": "Ada", "lastName": "Lovelace"}]
        assert result.identifiers == {"doi": "10.1000/xyz"}
        assert result.keywords == ["bees", "pollination"]
        assert result.year == 2020
        assert result.month == 3
        assert result.created == datetime(2020, 3, 15, tzinfo=timezone.utc)
        assert result.created_at == datetime(2020, 3, 15, tzinfo=timezone.utc)
        assert result.peer_review is True
        assert result.open_access is False
        assert result.countries_of_coverage == {"DE", "FR"}
        assert result.country == "GB"
        assert result.language == "eng"
        assert result.literature_type == LiteratureType.JOURNAL
        assert result.relevance == {Relevance.GBIF_USED, Relevance.GBIF_CITED}
        assert result.topics == {LiteratureTopic.ECOLOGY}
        assert result.gbif_region == {GbifRegion.EUROPE}
        assert result.gbif_dataset_key == [UUID(DATASET_KEY)]
        assert result.gbif_download_key == ["0001234-200221144449610"]

    def test_missing_fields_are_none(self, converter, make_hit):
        """缺失字段为 None"""
        result = converter.to_result(make_hit({"title": "Only a title"}))

        assert result.title == "Only a title"
        assert result.id is None
        assert result.topics is None
        assert result.created is None

    def test_invalid_field_does_not_fail_the_hit(self, converter, make_hit):
        """单个字段无效不影响其他字段"""
        hit = make_hit(
            {
                "title": "Still here",
                "literatureType": "NOT_A_TYPE",
                "year": "unknown",
                "created": "someday",
                "id": "not-a-uuid",
                "peerReview": "maybe",
            }
        )

        result = converter.to_result(hit)

        assert result.title == "Still here"
        assert result.literature_type is None
        assert result.year is None
        assert result.created is None
        assert result.id is None
        assert result.peer_review is None

    def test_invalid_member_drops_whole_set(self, converter, make_hit):
        """集合中有无效成员时整个字段为 None"""
        result = converter.to_result(make_hit({"topics": ["ECOLOGY", "NOT_A_TOPIC"]}))
        assert result.topics is None

    def test_highlight_replaces_field(self, converter, make_hit):
        """高亮片段替换原字段"""
        hit = make_hit(
            {"title": "Pollinators in decline", "abstract": "About bees"},
            highlight={"title": ["<em>Pollinators</em> in decline"]},
        )

        highlighted = converter.to_result(hit, highlight=True)
        plain = converter.to_result(hit)

        assert highlighted.title == "<em>Pollinators</em> in decline"
        assert highlighted.abstract == "About bees"
        assert plain.title == "Pollinators in decline"

    def test_serializes_with_camel_case(self, converter, make_hit):
        """结果按 camelCase 序列化"""
        result = converter.to_result(make_hit({"openAccess": True, "literatureType": "book"}))

        dumped = result.model_dump(by_alias=True, exclude_none=True)
        assert dumped == {"openAccess": True, "literatureType": LiteratureType.BOOK}
