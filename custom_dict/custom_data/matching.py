"""
Decide whether a candidate entry is new, already present, or a variant of an
existing entry.
"""

import dataclasses
import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

from custom_dict.custom_data.db_helpers import DictionaryStore
from custom_dict.custom_data.enums import MatchAction
from custom_dict.custom_data.text_helpers import normalize_gloss

logger = logging.getLogger(__name__)

# None, a bare seq, or (seq, gloss text to replace)
MatchTarget = Optional[Union[int, Tuple[int, str]]]


@dataclasses.dataclass(frozen=True)
class MatchResult:
    should_write: bool
    target: MatchTarget

    @property
    def action(self) -> MatchAction:
        if self.target is None:
            return MatchAction.INSERT
        if isinstance(self.target, tuple):
            return MatchAction.UPDATE_GLOSS
        return MatchAction.UPDATE if self.should_write else MatchAction.SKIP


def match_glosses(
    store: DictionaryStore,
    text: str,
    reading: str,
    fragments: Sequence[str],
    normalize: Callable[[str], str] = normalize_gloss,
    update_gloss: Optional[str] = None,
) -> Tuple[MatchTarget, bool]:
    """
    Look for an entry with the same text and reading and compare its glosses.

    Returns (seq, True) when one gloss already contains every fragment,
    ((seq, old_gloss), False) when a gloss equals update_gloss and may be
    rewritten in place, (seq, False) for any other headword match and
    (None, False) when nothing matches.
    """
    seqs = store.find_entries(text, reading)
    if not seqs:
        return None, False

    wanted = [normalize(fragment) for fragment in fragments if fragment]
    glosses_by_seq: List[Tuple[int, List[str]]] = [(seq, store.get_glosses(seq)) for seq in seqs]

    for seq, glosses in glosses_by_seq:
        for gloss in glosses:
            normalized = normalize(gloss)
            if all(fragment in normalized for fragment in wanted):
                logger.debug(f"Exact match for {text} [{reading}] in entry {seq}: '{gloss}'")
                return seq, True

    if update_gloss:
        target = normalize(update_gloss)
        for seq, glosses in glosses_by_seq:
            for gloss in glosses:
                if normalize(gloss) == target:
                    logger.debug(f"Gloss '{gloss}' of entry {seq} can be updated in place")
                    return (seq, gloss), False

    return seqs[0], False


def classify_match(target: MatchTarget, exact: bool) -> MatchResult:
    """Turn a match_glosses result into one of the four commit actions."""
    if target is None:
        return MatchResult(True, None)
    if isinstance(target, tuple):
        return MatchResult(True, target)
    if exact:
        return MatchResult(False, target)
    return MatchResult(True, target)
