#!/usr/bin/env python3
"""
Processor for the Japanese prefecture / municipality CSV.

Each row names a prefecture, or a municipality together with its
prefecture, plus the readings of both. Every row yields an entry for the
full name (東京都, 新宿区) and, for most unit types, a second entry for the
short name with the unit-type character removed (横浜市 -> 横浜). Both carry
the same English gloss, e.g. "Yokohama City, Kanagawa Prefecture".
"""

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence, Tuple

from custom_dict.custom_data.db_helpers import DictionaryStore
from custom_dict.custom_data.entries import make_entry_document
from custom_dict.custom_data.enums import (
    CIRCUIT_TYPE,
    CITY_TYPE,
    POS_NOUN,
    SHORT_FORM_EXCLUDED_TYPES,
    UNIT_TYPE_DESCRIPTIONS,
    UNIT_TYPE_SUFFIXES,
)
from custom_dict.custom_data.matching import MatchResult, classify_match, match_glosses
from custom_dict.custom_data.sources import CsvSource, MalformedRecordError
from custom_dict.custom_data.text_helpers import normalize_gloss, normalize_kana, romanize

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class MunicipalityEntry:
    """One headword/reading pair for a prefecture or municipality."""

    text: str
    reading: str
    type: str
    name: str  # romanized short name, e.g. "Shinjuku"
    definition: str
    parent_gloss: Optional[str] = None
    pos: str = POS_NOUN

    def __post_init__(self):
        if not self.text or not self.reading:
            raise MalformedRecordError(f"Municipality entry needs text and reading: {self.text!r} [{self.reading!r}]")
        if self.type not in UNIT_TYPE_SUFFIXES:
            raise MalformedRecordError(f"Unknown unit type '{self.type}' for {self.text}")

    @property
    def description(self) -> Optional[str]:
        return UNIT_TYPE_DESCRIPTIONS.get(self.type)

    def gloss_fragments(self) -> List[str]:
        return [f for f in (self.name, self.description, self.parent_gloss) if f]

    def to_document(self) -> ET.Element:
        return make_entry_document(self.text, self.reading, self.definition, self.pos)


def derive_short_form(
    text: str,
    reading: str,
    unit_type_table: Dict[str, List[str]] = UNIT_TYPE_SUFFIXES,
) -> Tuple[str, Optional[str]]:
    """
    Strip the unit-type character and its reading: (横浜市, よこはまし) -> (横浜, よこはま).

    Suffix readings are tried in table order and the first one the reading
    ends with wins. The short reading is None when none of them match.
    Names ending in 道 are returned unchanged.
    """
    if text.endswith(CIRCUIT_TYPE):
        return text, reading
    type_char = text[-1]
    short_text = text[:-1]
    for suffix in unit_type_table.get(type_char, []):
        if reading.endswith(suffix):
            return short_text, reading[: -len(suffix)]
    return short_text, None


def romanize_name(short_text: str, short_reading: str) -> str:
    if not short_reading:
        raise ValueError(f"No reading for short form '{short_text}'")
    return romanize(short_reading)


def municipality_name(text: str, reading: str) -> str:
    """Romanized short name; uses the whole reading if no suffix matched."""
    short_text, short_reading = derive_short_form(text, reading)
    if short_reading is None:
        logger.warning(f"No suffix reading for '{text}' matches '{reading}', romanizing full reading")
        return romanize(reading)
    return romanize_name(short_text, short_reading)


def compose_gloss(text: str, reading: str, parent_gloss: Optional[str] = None) -> str:
    """
    English gloss for a unit name.

    >>> compose_gloss("東京都", "とうきょうと")
    'Toukyou Metropolis'
    """
    gloss = municipality_name(text, reading)
    description = UNIT_TYPE_DESCRIPTIONS.get(text[-1])
    if description:
        gloss = f"{gloss} {description}"
    if parent_gloss:
        gloss = f"{gloss}, {parent_gloss}"
    return gloss


def transform_row(row: Sequence[str]) -> List[MunicipalityEntry]:
    """
    Convert one CSV row into the full-form entry and, where applicable,
    the short-form entry.

    Row layout: id, prefecture, municipality (empty for the prefecture
    itself), prefecture reading, municipality reading.
    """
    if len(row) != 5:
        raise MalformedRecordError(f"Expected 5 fields, got {len(row)}: {row!r}")
    _, pref_text, muni_text, pref_reading, muni_reading = (field.strip() for field in row)

    if not muni_text:
        text, reading, parent_gloss = pref_text, normalize_kana(pref_reading), None
    else:
        text, reading = muni_text, normalize_kana(muni_reading)
        if not pref_text or not pref_reading:
            raise MalformedRecordError(f"Municipality {muni_text} has no prefecture: {row!r}")
        parent_gloss = compose_gloss(pref_text, normalize_kana(pref_reading))

    if not text or not reading:
        raise MalformedRecordError(f"Row has no name or reading: {row!r}")
    unit_type = text[-1]
    if unit_type not in UNIT_TYPE_SUFFIXES:
        raise MalformedRecordError(f"Unknown unit type '{unit_type}' in {row!r}")

    name = municipality_name(text, reading)
    definition = compose_gloss(text, reading, parent_gloss)
    entries = [MunicipalityEntry(text, reading, unit_type, name, definition, parent_gloss)]

    if unit_type not in SHORT_FORM_EXCLUDED_TYPES:
        short_text, short_reading = derive_short_form(text, reading)
        if short_text and short_reading:
            entries.append(MunicipalityEntry(short_text, short_reading, unit_type, name, definition, parent_gloss))
        else:
            logger.warning(f"No short form for {text} [{reading}], only the full name is added")
    return entries


def classify_municipality(store: DictionaryStore, entry: MunicipalityEntry) -> MatchResult:
    """
    Match an entry against the dictionary and pick the commit action.

    Only city glosses may be rewritten in place: an existing gloss that is
    exactly "<Name> City" is replaced by the full composed gloss.
    """
    fragments = entry.gloss_fragments()
    update_gloss = None
    if entry.type == CITY_TYPE:
        update_gloss = f"{fragments[0]} {fragments[1]}"
    target, exact = match_glosses(
        store, entry.text, entry.reading, fragments, normalize=normalize_gloss, update_gloss=update_gloss
    )
    result = classify_match(target, exact)
    logger.debug(f"{entry.text} [{entry.reading}] -> {result.action}")
    return result


class MunicipalityCsvSource(CsvSource):
    description = "Municipalities"
    default_file = "municipality.csv"
    columns = 5

    def insert_record(self, engine, record) -> None:
        for entry in transform_row(record):
            engine.commit(entry, classify_municipality(engine.store, entry))
