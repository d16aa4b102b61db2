#!/usr/bin/env python3
"""
Processor for JMdict-shaped XML files of hand-written entries.
"""

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import Iterator, List, Optional, Tuple, Union

from custom_dict.custom_data.db_helpers import DictionaryStore
from custom_dict.custom_data.entries import EntryRecord, parse_entry_document
from custom_dict.custom_data.enums import IfExists
from custom_dict.custom_data.matching import MatchResult, classify_match
from custom_dict.custom_data.sources import CustomSource, MalformedRecordError
from custom_dict.custom_data.text_helpers import normalize_gloss, parse_seq

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class XmlEntry:
    """An <entry> element without an integer ent_seq, keyed by its first headword."""

    document: ET.Element
    record: EntryRecord

    @property
    def text(self) -> str:
        return (self.record.kanji or self.record.kana)[0]

    @property
    def reading(self) -> str:
        return self.record.kana[0]

    @property
    def glosses(self) -> List[str]:
        return [gloss for sense in self.record.senses for gloss in sense.glosses]

    def to_document(self) -> ET.Element:
        return self.document


def classify_xml_entry(store: DictionaryStore, entry: XmlEntry) -> MatchResult:
    """
    An entry already in the store verbatim is skipped, anything else is new.

    Verbatim means an entry with the same headword whose glosses include
    every gloss of this one after normalize_gloss.
    """
    wanted = {normalize_gloss(gloss) for gloss in entry.glosses}
    for seq in store.find_entries(entry.text, entry.reading):
        present = {normalize_gloss(gloss) for gloss in store.get_glosses(seq)}
        if wanted <= present:
            return classify_match(seq, True)
    return classify_match(None, False)


class XmlSource(CustomSource):
    """
    Complete <entry> documents, each carrying its own <ent_seq>.

    Entries are loaded with the overwrite policy (or the run's if_exists)
    so that editing the file and re-running replaces the stored entry. An
    ent_seq that is not an integer is kept as a literal; such an entry is
    stored under a new id unless the same headword already has its glosses.
    """

    description = "Extra entries"
    default_file = "extra.xml"
    if_exists = IfExists.OVERWRITE

    def read_records(self) -> Iterator[Tuple[Union[int, str], ET.Element]]:
        try:
            for _, element in ET.iterparse(self.source_file, events=("end",)):
                if element.tag != "entry":
                    continue
                seq_node = element.find("ent_seq")
                seq = parse_seq(seq_node.text if seq_node is not None else "")
                yield seq, element
        except ET.ParseError as e:
            line, column = e.position
            raise MalformedRecordError(f"{self.source_file}:{line}:{column}: {e}") from e

    def insert_record(self, engine, record) -> Optional[int]:
        seq, document = record
        if isinstance(seq, int):
            return engine.load_document(document, seq, if_exists=engine.config.if_exists or self.if_exists)

        parsed = parse_entry_document(document)
        if not parsed.kana:
            raise MalformedRecordError(f"Entry '{seq}' in {self.source_file} has no <reb>")
        entry = XmlEntry(document, parsed)
        new_seq = engine.commit(entry, classify_xml_entry(engine.store, entry))
        if new_seq is not None:
            logger.warning(f"Entry with non-numeric ent_seq '{seq}' in {self.source_file} stored as {new_seq}")
        return new_seq
