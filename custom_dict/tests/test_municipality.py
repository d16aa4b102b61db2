import pytest

from custom_dict.custom_data.enums import CIRCUIT_TYPE, UNIT_TYPE_SUFFIXES
from custom_dict.custom_data.processors.municipality_processor import (
    MunicipalityEntry,
    compose_gloss,
    derive_short_form,
    romanize_name,
    transform_row,
)
from custom_dict.custom_data.sources import MalformedRecordError
from custom_dict.custom_data.text_helpers import romanize


@pytest.mark.parametrize(
    "type_char,suffix",
    [(t, s) for t, suffixes in UNIT_TYPE_SUFFIXES.items() if t != CIRCUIT_TYPE for s in suffixes],
)
def test_derive_short_form_recovers_short_name(type_char, suffix):
    assert derive_short_form("横浜" + type_char, "よこはま" + suffix) == ("横浜", "よこはま")


def test_derive_short_form_leaves_circuit_unchanged():
    assert derive_short_form("北海道", "ほっかいどう") == ("北海道", "ほっかいどう")


def test_derive_short_form_without_matching_suffix():
    assert derive_short_form("横浜市", "よこはま") == ("横浜", None)
    assert derive_short_form("新宿区", "しんじゅくち") == ("新宿", None)


def test_derive_short_form_uses_declared_order():
    table = {"町": ["まち", "ち"]}
    assert derive_short_form("箱根町", "はこねまち", table) == ("箱根", "はこね")
    table = {"町": ["ち", "まち"]}
    assert derive_short_form("箱根町", "はこねまち", table) == ("箱根", "はこねま")


def test_romanize_name_uses_short_reading():
    assert romanize_name("新宿", "しんじゅく") == "Shinjuku"
    with pytest.raises(ValueError):
        romanize_name("新宿", None)


def test_compose_gloss():
    assert compose_gloss("東京都", "とうきょうと") == "Toukyou Metropolis"
    assert compose_gloss("新宿区", "しんじゅくく", "Toukyou Metropolis") == "Shinjuku Ward, Toukyou Metropolis"


def test_compose_gloss_without_description():
    gloss = compose_gloss("北海道", "ほっかいどう")
    assert gloss == romanize("ほっかいどう")
    assert "None" not in gloss


def test_transform_ward_row_has_no_short_form():
    entries = transform_row(["1", "東京都", "新宿区", "とうきょうと", "しんじゅくく"])
    assert len(entries) == 1
    entry = entries[0]
    assert entry.text == "新宿区"
    assert entry.reading == "しんじゅくく"
    assert entry.type == "区"
    assert entry.definition.endswith("Ward, Toukyou Metropolis")
    assert entry.definition == "Shinjuku Ward, Toukyou Metropolis"
    assert entry.parent_gloss == "Toukyou Metropolis"


def test_transform_city_row_adds_short_form():
    full, short = transform_row(["7", "神奈川県", "横浜市", "かながわけん", "よこはまし"])
    assert (full.text, full.reading) == ("横浜市", "よこはまし")
    assert (short.text, short.reading) == ("横浜", "よこはま")
    assert full.definition == short.definition == "Yokohama City, Kanagawa Prefecture"
    assert short.type == "市"
    assert short.name == "Yokohama"


def test_transform_prefecture_row():
    full, short = transform_row(["1", "東京都", "", "とうきょうと", ""])
    assert full.parent_gloss is None
    assert full.definition == "Toukyou Metropolis"
    assert (short.text, short.reading) == ("東京", "とうきょう")


def test_transform_circuit_row_has_no_short_form():
    entries = transform_row(["4", "北海道", "", "ほっかいどう", ""])
    assert [e.text for e in entries] == ["北海道"]


def test_transform_normalizes_katakana_readings():
    entries = transform_row(["2", "東京都", "新宿区", "トウキョウト", "シンジュクク"])
    assert entries[0].reading == "しんじゅくく"
    assert entries[0].definition == "Shinjuku Ward, Toukyou Metropolis"


def test_transform_skips_short_form_when_reading_does_not_match():
    entries = transform_row(["3", "東京都", "新宿市", "とうきょうと", "しんじゅく"])
    assert len(entries) == 1
    assert entries[0].definition == "Shinjuku City, Toukyou Metropolis"


def test_transform_rejects_bad_rows():
    with pytest.raises(MalformedRecordError):
        transform_row(["1", "東京都", "新宿区", "とうきょうと"])
    with pytest.raises(MalformedRecordError):
        transform_row(["1", "東京", "", "とうきょう", ""])
    with pytest.raises(MalformedRecordError):
        transform_row(["1", "東京都", "", "", ""])


def test_entry_invariants():
    with pytest.raises(MalformedRecordError):
        MunicipalityEntry("", "よこはま", "市", "Yokohama", "Yokohama City")
    with pytest.raises(MalformedRecordError):
        MunicipalityEntry("横浜", "よこはま", "島", "Yokohama", "Yokohama City")


def test_entry_document_shape():
    full, _ = transform_row(["7", "神奈川県", "横浜市", "かながわけん", "よこはまし"])
    document = full.to_document()
    assert document.find("ent_seq").text is None
    assert document.find("k_ele/keb").text == "横浜市"
    assert document.find("r_ele/reb").text == "よこはまし"
    assert document.find("sense/pos").text == "n"
    assert [g.text for g in document.findall("sense/gloss")] == ["Yokohama City, Kanagawa Prefecture"]


def test_kana_headword_has_no_kanji_element():
    entry = MunicipalityEntry("つくば市", "つくばし", "市", "Tsukuba", "Tsukuba City")
    assert entry.to_document().find("k_ele") is not None
    entry = MunicipalityEntry("つくば", "つくば", "市", "Tsukuba", "Tsukuba City")
    assert entry.to_document().find("k_ele") is None
