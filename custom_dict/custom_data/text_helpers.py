#!/usr/bin/env python3
"""
text_helpers.py

Kana normalisation, romanization and gloss folding used when matching
custom entries against the dictionary.
"""

import logging
import re
import unicodedata
from typing import Union

import jaconv
import unidecode

logger = logging.getLogger(__name__)

# Hiragana, katakana (incl. small forms and iteration marks) and the prolonged sound mark
KANA_REGEX = re.compile(r"^[ぁ-ゟ゠-ヿー]+$")
ELONGATION_MARKS_REGEX = re.compile(r"[-ー‐-―]")
DOUBLED_VOWEL_REGEX = re.compile(r"([aeiou])\1+")
WHITESPACE_REGEX = re.compile(r"\s+")
# ん followed by a vowel or y- kana, romanized with an apostrophe (かんおんじ -> kan'onji)
SYLLABIC_N_REGEX = re.compile(r"ん(?=[あいうえおやゆよ])")
APOSTROPHE_REGEX = re.compile(r"['’]")


def is_kana(text: str) -> bool:
    """True if text is written entirely in kana."""
    if not text:
        return False
    return bool(KANA_REGEX.match(text))


def normalize_kana(text: str) -> str:
    """NFKC-normalise and convert katakana to hiragana."""
    if not text:
        return text
    normalized = unicodedata.normalize("NFKC", text.strip())
    return jaconv.kata2hira(normalized)


def romanize(reading: str) -> str:
    """
    Render a kana reading in capitalised Hepburn-style romaji.

    Long vowels are spelled out rather than marked, so とうきょう becomes
    "Toukyou". A syllabic n before a vowel takes an apostrophe, so
    かんおんじ becomes "Kan'onji" rather than "Kanonji".
    """
    if not reading:
        return ""
    kana = SYLLABIC_N_REGEX.sub("ん'", normalize_kana(reading))
    romaji = jaconv.kana2alphabet(kana)
    return " ".join(word.capitalize() for word in romaji.split())


def normalize_gloss(text: str) -> str:
    """
    Fold a gloss for loose comparison.

    Diacritics and apostrophes are dropped and long vowels collapsed, so
    "Tōkyō", "Tokyo" and "Toukyou" all compare equal.
    """
    if not text:
        return ""
    folded = unidecode.unidecode(text).lower()
    folded = ELONGATION_MARKS_REGEX.sub("", folded)
    folded = APOSTROPHE_REGEX.sub("", folded)
    folded = folded.replace("ou", "o")
    folded = DOUBLED_VOWEL_REGEX.sub(r"\1", folded)
    return WHITESPACE_REGEX.sub(" ", folded).strip()


def parse_seq(text: str) -> Union[int, str]:
    """Parse an ent_seq value, keeping the literal string if it is not an integer."""
    value = (text or "").strip()
    try:
        return int(value)
    except ValueError:
        logger.debug(f"Sequence id '{value}' is not an integer, keeping literal value")
        return value
