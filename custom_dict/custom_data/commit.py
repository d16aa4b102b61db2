"""
Applies classified candidate entries to the dictionary store.
"""

import dataclasses
import logging
from collections import Counter
from typing import Optional
import xml.etree.ElementTree as ET

from custom_dict.custom_data.db_helpers import DictionaryStore
from custom_dict.custom_data.enums import IfExists, MatchAction
from custom_dict.custom_data.matching import MatchResult

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RunConfig:
    """Options for one load run."""

    silent: bool = False
    data_dir: Optional[str] = None
    # Policy for entries loaded at an explicit id; None keeps the source default
    if_exists: Optional[IfExists] = None


class CommitEngine:
    """
    Executes insert/update/update-gloss/skip actions for one run.

    The sequence counter is read from the store once and then only moves
    forward: every insert takes the current value and increments it, and
    loading an entry at an explicit id pushes the counter past that id.
    """

    def __init__(self, store: DictionaryStore, config: Optional[RunConfig] = None):
        self.store = store
        self.config = config or RunConfig()
        self.next_seq = store.next_seq()
        self.stats = Counter()
        logger.debug(f"Commit engine starting at seq {self.next_seq}")

    def allocate_seq(self) -> int:
        seq = self.next_seq
        self.next_seq += 1
        return seq

    def insert_document(self, document: ET.Element) -> int:
        """Store a new entry under a freshly allocated sequence id."""
        seq = self.allocate_seq()
        self.store.load_entry(document, seq, if_exists=IfExists.ERROR)
        self.stats[MatchAction.INSERT] += 1
        return seq

    def load_document(self, document: ET.Element, seq: int, if_exists: IfExists = IfExists.OVERWRITE) -> int:
        """Store an entry at an id chosen by the source."""
        self.store.load_entry(document, seq, if_exists=if_exists)
        if seq >= self.next_seq:
            self.next_seq = seq + 1
        self.stats[MatchAction.INSERT] += 1
        return seq

    def commit(self, entry, result: MatchResult) -> Optional[int]:
        """
        Apply a MatchResult for a candidate entry.

        The entry must provide to_document(), definition and pos. Returns the
        sequence id written to, or None for skips.
        """
        action = result.action
        if action is MatchAction.INSERT:
            seq = self.insert_document(entry.to_document())
            logger.debug(f"Inserted {entry.text} [{entry.reading}] as {seq}")
            return seq

        self.stats[action] += 1
        if action is MatchAction.UPDATE:
            self.store.add_new_sense(result.target, [entry.pos], [entry.definition])
            logger.debug(f"Added sense '{entry.definition}' to entry {result.target}")
            return result.target

        if action is MatchAction.UPDATE_GLOSS:
            seq, old_gloss = result.target
            self.store.update_gloss_text(seq, old_gloss, entry.definition)
            logger.debug(f"Entry {seq}: gloss '{old_gloss}' -> '{entry.definition}'")
            return seq

        logger.debug(f"Skipping {entry.text} [{entry.reading}], already in entry {result.target}")
        return None
