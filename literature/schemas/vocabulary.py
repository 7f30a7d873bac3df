"""文献检索词表

文献类型、相关性、主题和 GBIF 区域等受控词表。国家与语言不单独维护枚举，
直接通过 pycountry 解析为 ISO 代码（国家 ISO 3166-1 alpha-2，语言 ISO 639-3）。
"""

from __future__ import annotations

from enum import Enum

import pycountry


class LiteratureType(str, Enum):
    """文献类型"""

    JOURNAL = "journal"
    BOOK = "book"
    GENERIC = "generic"
    BOOK_SECTION = "book_section"
    CONFERENCE_PROCEEDINGS = "conference_proceedings"
    WORKING_PAPER = "working_paper"
    REPORT = "report"
    WEB_PAGE = "web_page"
    THESIS = "thesis"
    MAGAZINE_ARTICLE = "magazine_article"
    STATUTE = "statute"
    PATENT = "patent"
    NEWSPAPER_ARTICLE = "newspaper_article"
    COMPUTER_PROGRAM = "computer_program"
    HEARING = "hearing"
    TELEVISION_BROADCAST = "television_broadcast"
    ENCYCLOPEDIA_ARTICLE = "encyclopedia_article"
    CASE = "case"
    FILM = "film"
    BILL = "bill"


class Relevance(str, Enum):
    """文献与 GBIF 的关联方式"""

    GBIF_USED = "GBIF_USED"
    GBIF_CITED = "GBIF_CITED"
    GBIF_DISCUSSED = "GBIF_DISCUSSED"
    GBIF_PRIMARY = "GBIF_PRIMARY"
    GBIF_ACKNOWLEDGED = "GBIF_ACKNOWLEDGED"
    GBIF_PUBLISHED = "GBIF_PUBLISHED"
    GBIF_AUTHOR = "GBIF_AUTHOR"
    GBIF_MENTIONED = "GBIF_MENTIONED"
    GBIF_FUNDED = "GBIF_FUNDED"


class LiteratureTopic(str, Enum):
    """文献主题"""

    AGRICULTURE = "AGRICULTURE"
    BIODIVERSITY_SCIENCE = "BIODIVERSITY_SCIENCE"
    BIOGEOGRAPHY = "BIOGEOGRAPHY"
    CITIZEN_SCIENCE = "CITIZEN_SCIENCE"
    CLIMATE_CHANGE = "CLIMATE_CHANGE"
    CONSERVATION = "CONSERVATION"
    DATA_MANAGEMENT = "DATA_MANAGEMENT"
    DATA_PAPER = "DATA_PAPER"
    ECOLOGY = "ECOLOGY"
    ECOSYSTEM_SERVICES = "ECOSYSTEM_SERVICES"
    EVOLUTION = "EVOLUTION"
    FRESHWATER = "FRESHWATER"
    HUMAN_HEALTH = "HUMAN_HEALTH"
    INVASIVES = "INVASIVES"
    MARINE = "MARINE"
    PHYLOGENETICS = "PHYLOGENETICS"
    SPECIES_DISTRIBUTIONS = "SPECIES_DISTRIBUTIONS"
    TAXONOMY = "TAXONOMY"


class GbifRegion(str, Enum):
    """GBIF 区域"""

    AFRICA = "AFRICA"
    ASIA = "ASIA"
    EUROPE = "EUROPE"
    NORTH_AMERICA = "NORTH_AMERICA"
    OCEANIA = "OCEANIA"
    LATIN_AMERICA = "LATIN_AMERICA"
    ANTARCTICA = "ANTARCTICA"


def lookup_enum(enum_cls: type[Enum], value: str) -> Enum:
    """按名称（不区分大小写）或取值查找枚举成员

    Raises:
        ValueError: 无法识别的取值
    """
    candidate = value.strip()
    member = enum_cls.__members__.get(candidate.upper())
    if member is not None:
        return member
    for m in enum_cls:
        if str(m.value).lower() == candidate.lower():
            return m
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}")


def _lookup_code(database, candidate: str, code_fields: tuple[str, ...]):
    """先按代码精确匹配，找不到再按名称查找

    ``lookup()`` 会同时匹配名称，``en`` 这样的代码可能先命中名称为 "En" 的语言。
    """
    for code_field in code_fields:
        record = database.get(**{code_field: candidate})
        if record is not None:
            return record
    return database.lookup(candidate)


def country_code(value: str) -> str:
    """解析国家为 ISO 3166-1 alpha-2 代码

    接受 alpha-2、alpha-3、数字代码和英文名称（``UNITED_KINGDOM`` 这种枚举风格的名称也可以）。

    Raises:
        ValueError: 无法识别的国家
    """
    candidate = value.strip()
    if len(candidate) == 2:
        fields = ("alpha_2",)
    elif candidate.isdigit():
        fields = ("numeric",)
    elif len(candidate) == 3:
        fields = ("alpha_3",)
    else:
        fields = ()
    try:
        return _lookup_code(pycountry.countries, candidate.replace("_", " "), fields).alpha_2
    except LookupError as e:
        raise ValueError(f"unknown country {value!r}") from e


def language_code(value: str) -> str:
    """解析语言为 ISO 639-3 代码

    接受 ISO 639-1、ISO 639-3 代码和英文名称。

    Raises:
        ValueError: 无法识别的语言
    """
    candidate = value.strip()
    if len(candidate) == 2:
        fields = ("alpha_2",)
    elif len(candidate) == 3:
        fields = ("alpha_3",)
    else:
        fields = ()
    try:
        return _lookup_code(pycountry.languages, candidate.replace("_", " "), fields).alpha_3
    except LookupError as e:
        raise ValueError(f"unknown language {value!r}") from e


COUNTRY_CARDINALITY = len(pycountry.countries)
