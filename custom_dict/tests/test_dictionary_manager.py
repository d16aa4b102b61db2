import contextlib

import pytest

from custom_dict import dictionary_manager
from custom_dict.custom_data.enums import IfExists
from custom_dict.custom_data.sources import UnknownSourceError


@pytest.fixture
def fake_db(monkeypatch, store):
    """Route the CLI's connection and store to the in-memory store."""
    opened = []

    @contextlib.contextmanager
    def fake_connection(rollback_only=False):
        opened.append(rollback_only)
        yield "cursor"

    monkeypatch.setattr(dictionary_manager, "DBConnection", fake_connection)
    monkeypatch.setattr(dictionary_manager, "PostgresDictionaryStore", lambda cur: store)
    return opened


def test_argument_parser():
    parser = dictionary_manager.create_argument_parser()
    args = parser.parse_args(["load", "--sources", "municipality", "--silent", "--dry-run"])
    assert args.command == "load"
    assert args.sources == "municipality"
    assert args.silent and args.dry_run
    assert args.data_dir is None

    args = parser.parse_args(["sources", "--data-dir", "/tmp/custom"])
    assert args.command == "sources"
    assert args.data_dir == "/tmp/custom"

    with pytest.raises(SystemExit):
        parser.parse_args([])


def test_load_command(fake_db, store, data_dir):
    args = dictionary_manager.create_argument_parser().parse_args(
        ["load", "--sources", "municipality", "--data-dir", str(data_dir), "--silent"]
    )
    assert dictionary_manager.load_data(args) == 0
    assert fake_db == [False]
    assert store.find_entries("新宿区", "しんじゅくく")


def test_load_command_dry_run_uses_rollback(fake_db, data_dir):
    args = dictionary_manager.create_argument_parser().parse_args(
        ["load", "--data-dir", str(data_dir), "--dry-run"]
    )
    assert dictionary_manager.load_data(args) == 0
    assert fake_db == [True]


def test_load_command_reports_bad_source(fake_db, data_dir):
    args = dictionary_manager.create_argument_parser().parse_args(
        ["load", "--sources", "unknown", "--data-dir", str(data_dir), "--silent"]
    )
    assert issubclass(UnknownSourceError, dictionary_manager.CustomDataError)
    assert dictionary_manager.load_data(args) == 1


def test_sources_command(data_dir):
    args = dictionary_manager.create_argument_parser().parse_args(["sources", "--data-dir", str(data_dir)])
    assert dictionary_manager.list_sources(args) == 0


def test_load_command_reports_malformed_xml(fake_db, tmp_path):
    (tmp_path / "extra.xml").write_text("<JMdict><entry>", encoding="utf-8")
    args = dictionary_manager.create_argument_parser().parse_args(
        ["load", "--sources", "extra", "--data-dir", str(tmp_path), "--silent"]
    )
    assert dictionary_manager.load_data(args) == 1


def test_if_exists_option(fake_db, store, data_dir):
    parser = dictionary_manager.create_argument_parser()
    assert parser.parse_args(["load"]).if_exists is None
    with pytest.raises(SystemExit):
        parser.parse_args(["load", "--if-exists", "replace"])

    store.add("推し活", "おしかつ", "oshikatsu", seq=5000)
    args = parser.parse_args(["load", "--sources", "extra", "--data-dir", str(data_dir), "--silent", "--if-exists", "Skip"])
    assert args.if_exists is IfExists.SKIP
    assert dictionary_manager.load_data(args) == 0
    assert store.get_glosses(5000) == ["oshikatsu"]
