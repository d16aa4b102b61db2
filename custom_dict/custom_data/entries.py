"""
JMdict-shaped entry documents: building them for generated entries and
flattening them into rows for the store.
"""

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Union

from custom_dict.custom_data.enums import POS_NOUN
from custom_dict.custom_data.text_helpers import is_kana, parse_seq

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SenseRecord:
    pos: List[str] = dataclasses.field(default_factory=list)
    glosses: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class EntryRecord:
    """Flat view of one <entry> element."""

    seq: Optional[Union[int, str]]
    kanji: List[str] = dataclasses.field(default_factory=list)
    kana: List[str] = dataclasses.field(default_factory=list)
    senses: List[SenseRecord] = dataclasses.field(default_factory=list)
    content: str = ""


def make_entry_document(text: str, reading: str, definition: str, pos: str = POS_NOUN) -> ET.Element:
    """
    Build an <entry> document for a single headword.

    ent_seq is left empty for the store to fill in. A <k_ele> is only
    written when the text is not itself kana; otherwise the reading is the
    only surface form.
    """
    entry = ET.Element("entry")
    ET.SubElement(entry, "ent_seq")
    if not is_kana(text):
        k_ele = ET.SubElement(entry, "k_ele")
        ET.SubElement(k_ele, "keb").text = text
    r_ele = ET.SubElement(entry, "r_ele")
    ET.SubElement(r_ele, "reb").text = reading
    sense = ET.SubElement(entry, "sense")
    ET.SubElement(sense, "pos").text = pos
    ET.SubElement(sense, "gloss").text = definition
    return entry


def set_entry_seq(document: ET.Element, seq: int) -> ET.Element:
    ent_seq = document.find("ent_seq")
    if ent_seq is None:
        ent_seq = ET.Element("ent_seq")
        document.insert(0, ent_seq)
    ent_seq.text = str(seq)
    return document


def _texts(element: ET.Element, path: str) -> List[str]:
    return [node.text.strip() for node in element.findall(path) if node.text and node.text.strip()]


def parse_entry_document(document: ET.Element) -> EntryRecord:
    """Flatten an <entry> element into an EntryRecord."""
    seq_node = document.find("ent_seq")
    seq = parse_seq(seq_node.text) if seq_node is not None and seq_node.text else None

    senses = []
    for sense in document.findall("sense"):
        senses.append(SenseRecord(pos=_texts(sense, "pos"), glosses=_texts(sense, "gloss")))

    record = EntryRecord(
        seq=seq,
        kanji=_texts(document, "k_ele/keb"),
        kana=_texts(document, "r_ele/reb"),
        senses=senses,
        content=ET.tostring(document, encoding="unicode"),
    )
    if not record.kana:
        logger.warning(f"Entry {seq} has no reading element")
    return record
