import copy

import pytest

from custom_dict.custom_data.db_helpers import DictionaryStore, DuplicateEntryError, resolve_document_seq
from custom_dict.custom_data.entries import SenseRecord, make_entry_document, parse_entry_document
from custom_dict.custom_data.enums import IfExists


class MemoryDictionaryStore(DictionaryStore):
    """DictionaryStore keeping parsed entries in a dict keyed by seq."""

    def __init__(self):
        self.entries = {}
        self.calls = []

    def next_seq(self):
        return max(self.entries, default=0) + 1

    def load_entry(self, document, seq=None, if_exists=IfExists.SKIP):
        seq = resolve_document_seq(document, seq)
        self.calls.append(("load_entry", seq))
        if seq in self.entries:
            if if_exists is IfExists.SKIP:
                return seq
            if if_exists is IfExists.ERROR:
                raise DuplicateEntryError(f"Entry {seq} already exists")
        self.entries[seq] = parse_entry_document(document)
        return seq

    def add_new_sense(self, seq, pos_tags, glosses):
        self.calls.append(("add_new_sense", seq))
        self.entries[seq].senses.append(SenseRecord(pos=list(pos_tags), glosses=list(glosses)))

    def update_gloss_text(self, seq, old_text, new_text):
        self.calls.append(("update_gloss_text", seq))
        changed = 0
        for sense in self.entries[seq].senses:
            for i, gloss in enumerate(sense.glosses):
                if gloss == old_text:
                    sense.glosses[i] = new_text
                    changed += 1
        return changed

    def find_entries(self, text, reading):
        return sorted(
            seq for seq, record in self.entries.items()
            if reading in record.kana and (text in record.kanji or text in record.kana)
        )

    def get_glosses(self, seq):
        return [gloss for sense in self.entries[seq].senses for gloss in sense.glosses]

    # Test helpers
    def add(self, text, reading, *glosses, seq=None):
        seq = seq if seq is not None else self.next_seq()
        document = make_entry_document(text, reading, glosses[0])
        self.load_entry(document, seq)
        for gloss in glosses[1:]:
            self.entries[seq].senses[0].glosses.append(gloss)
        return seq

    def snapshot(self):
        return {
            seq: (record.kanji, record.kana, [(s.pos, s.glosses) for s in record.senses])
            for seq, record in copy.deepcopy(self.entries).items()
        }


@pytest.fixture
def store():
    return MemoryDictionaryStore()


@pytest.fixture
def data_dir(tmp_path):
    """A data directory with a small municipality CSV and extra XML file."""
    (tmp_path / "municipality.csv").write_text(
        "1,東京都,,とうきょうと,\n"
        "2,東京都,新宿区,とうきょうと,しんじゅくく\n"
        "3,神奈川県,,かながわけん,\n"
        "4,神奈川県,横浜市,かながわけん,よこはまし\n"
        "5,神奈川県,箱根町,かながわけん,はこねまち\n",
        encoding="utf-8",
    )
    (tmp_path / "extra.xml").write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<JMdict>\n"
        "<entry><ent_seq>5000</ent_seq><k_ele><keb>推し活</keb></k_ele>"
        "<r_ele><reb>おしかつ</reb></r_ele><sense><pos>n</pos><gloss>fan activities</gloss></sense></entry>\n"
        "<entry><ent_seq>5001</ent_seq><r_ele><reb>ぴえん</reb></r_ele>"
        "<sense><pos>int</pos><gloss>boo-hoo</gloss></sense></entry>\n"
        "</JMdict>\n",
        encoding="utf-8",
    )
    return tmp_path
