#!/usr/bin/env python3
"""
Db helpers for the custom data loader
"""
import abc
import functools
import logging
import os
from typing import List, Optional, Union
import xml.etree.ElementTree as ET

import psycopg2
import psycopg2.extensions
import psycopg2.extras
from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

from custom_dict.custom_data.enums import IfExists
from custom_dict.custom_data.entries import EntryRecord, SenseRecord, parse_entry_document, set_entry_seq

logger = logging.getLogger(__name__)

load_dotenv()


# Custom exceptions
class DatabaseError(Exception):
    """Base exception for database-related errors"""
    pass

class DatabaseConnectionError(DatabaseError):
    """Exception raised for database connection errors"""
    pass

class DuplicateEntryError(DatabaseError):
    """Raised by load_entry when the sequence id exists and the policy is 'error'"""
    pass


DB_CONFIG = {
    "dbname": os.getenv("DB_NAME", "jmdict"),
    "user": os.getenv("DB_USER", "postgres"),
    "password": os.getenv("DB_PASSWORD", "postgres"),
    "host": os.getenv("DB_HOST", "localhost"),
    "port": os.getenv("DB_PORT", "5432"),
}


# --- Core Connection Functions ---
def get_connection():
    """Establish a database connection using env vars or DATABASE_URL."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        logger.debug("DATABASE_URL not set, using individual DB_* variables.")
        try:
            conn = psycopg2.connect(client_encoding="UTF8", **DB_CONFIG)
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to connect using DB_* variables: {e}")
            raise DatabaseConnectionError(f"DB connect failed: {e}") from e
    else:
        try:
            logger.debug(f"Attempting connection using DATABASE_URL: {database_url[:20]}...")
            url = make_url(database_url)
            conn_args = url.translate_connect_args(database="dbname")
            if "username" in conn_args:
                conn_args["user"] = conn_args.pop("username")
            conn_args["client_encoding"] = "UTF8"
            conn = psycopg2.connect(**conn_args)
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to connect using DATABASE_URL ({database_url[:20]}...): {e}")
            raise DatabaseConnectionError(f"DATABASE_URL connect failed: {e}") from e

    conn.autocommit = False  # One transaction per run
    return conn


class DBConnection:
    """
    Context manager yielding a cursor on a fresh connection.

    Commits on a clean exit and rolls back if the block raised. With
    rollback_only=True the transaction is always rolled back (dry runs).
    """
    def __init__(self, rollback_only=False):
        self.rollback_only = rollback_only
        self.conn = None
        self.cursor = None

    def __enter__(self):
        self.conn = get_connection()
        try:
            self.cursor = self.conn.cursor(cursor_factory=psycopg2.extras.DictCursor)
        except Exception:
            self.conn.close()
            self.conn = None
            raise
        return self.cursor

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.conn:
            return False
        try:
            if exc_type is not None or self.rollback_only:
                self.conn.rollback()
                if exc_type is not None:
                    logger.debug("Transaction rolled back due to exception in DBConnection context.")
            else:
                try:
                    self.conn.commit()
                except psycopg2.Error as commit_err:
                    logger.error(f"Commit failed in DBConnection __exit__: {commit_err}")
                    self.conn.rollback()
                    raise DatabaseError("Commit failed") from commit_err
        finally:
            if self.cursor:
                self.cursor.close()
            self.conn.close()
            self.conn = None
        return False


def with_transaction(commit=True):
    """
    Decorator for database operations that need to run within a transaction.
    Joins the caller's transaction when autocommit is off; only starts (and
    commits) its own when the connection is in autocommit mode.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(cur, *args, **kwargs):
            conn = cur.connection
            started_transaction = False

            if conn.info.transaction_status == psycopg2.extensions.TRANSACTION_STATUS_INERROR:
                raise DatabaseError(f"Cannot run {func.__name__}: transaction already aborted")

            if conn.autocommit:
                conn.autocommit = False
                started_transaction = True
                logger.debug(f"Started new transaction for {func.__name__}")

            try:
                result = func(cur, *args, **kwargs)
                if commit and started_transaction:
                    conn.commit()
                    logger.debug(f"Transaction committed for {func.__name__}")
                return result
            except Exception as e:
                if started_transaction:
                    logger.error(f"Error in {func.__name__}, rolling back transaction: {e}")
                    conn.rollback()
                raise
            finally:
                if started_transaction:
                    conn.autocommit = True
        return wrapper
    return decorator


TABLE_CREATION_SQL = r"""
CREATE TABLE IF NOT EXISTS entry (
    seq INTEGER PRIMARY KEY,
    content TEXT,
    root_p BOOLEAN DEFAULT FALSE,
    n_kanji INTEGER DEFAULT 0,
    n_kana INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS kanji_text (
    id SERIAL PRIMARY KEY,
    seq INTEGER NOT NULL REFERENCES entry(seq) ON DELETE CASCADE,
    text TEXT NOT NULL,
    ord INTEGER DEFAULT 0
);
CREATE INDEX IF NOT EXISTS kanji_text_text_idx ON kanji_text(text);

CREATE TABLE IF NOT EXISTS kana_text (
    id SERIAL PRIMARY KEY,
    seq INTEGER NOT NULL REFERENCES entry(seq) ON DELETE CASCADE,
    text TEXT NOT NULL,
    ord INTEGER DEFAULT 0
);
CREATE INDEX IF NOT EXISTS kana_text_text_idx ON kana_text(text);

CREATE TABLE IF NOT EXISTS sense (
    id SERIAL PRIMARY KEY,
    seq INTEGER NOT NULL REFERENCES entry(seq) ON DELETE CASCADE,
    ord INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS gloss (
    id SERIAL PRIMARY KEY,
    sense_id INTEGER NOT NULL REFERENCES sense(id) ON DELETE CASCADE,
    text TEXT NOT NULL,
    ord INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS sense_prop (
    id SERIAL PRIMARY KEY,
    tag TEXT NOT NULL,
    sense_id INTEGER NOT NULL REFERENCES sense(id) ON DELETE CASCADE,
    text TEXT NOT NULL,
    ord INTEGER DEFAULT 0,
    seq INTEGER NOT NULL REFERENCES entry(seq) ON DELETE CASCADE
);
"""


def create_or_update_tables(conn):
    """Create the dictionary tables if they are missing."""
    logger.info("Creating dictionary tables...")
    with conn.cursor() as cur:
        cur.execute(TABLE_CREATION_SQL)
    conn.commit()
    logger.info("Dictionary tables ready")


# --- Row-level operations (all take a cursor) ---
def get_next_seq(cur) -> int:
    cur.execute("SELECT COALESCE(MAX(seq), 0) + 1 FROM entry")
    return cur.fetchone()[0]


def entry_exists(cur, seq: int) -> bool:
    cur.execute("SELECT 1 FROM entry WHERE seq = %s", (seq,))
    return cur.fetchone() is not None


@with_transaction(commit=True)
def delete_entry(cur, seq: int):
    cur.execute("DELETE FROM entry WHERE seq = %s", (seq,))


def _insert_senses(cur, seq: int, senses, start_ord: int = 0):
    for offset, sense in enumerate(senses):
        cur.execute(
            "INSERT INTO sense (seq, ord) VALUES (%s, %s) RETURNING id",
            (seq, start_ord + offset),
        )
        sense_id = cur.fetchone()[0]
        for ord_, pos in enumerate(sense.pos):
            cur.execute(
                "INSERT INTO sense_prop (tag, sense_id, text, ord, seq) VALUES ('pos', %s, %s, %s, %s)",
                (sense_id, pos, ord_, seq),
            )
        for ord_, gloss in enumerate(sense.glosses):
            cur.execute(
                "INSERT INTO gloss (sense_id, text, ord) VALUES (%s, %s, %s)",
                (sense_id, gloss, ord_),
            )


@with_transaction(commit=True)
def insert_entry_rows(cur, record: EntryRecord, seq: int):
    """Write one parsed entry and all its forms, senses and glosses."""
    cur.execute(
        "INSERT INTO entry (seq, content, root_p, n_kanji, n_kana) VALUES (%s, %s, TRUE, %s, %s)",
        (seq, record.content, len(record.kanji), len(record.kana)),
    )
    for ord_, text in enumerate(record.kanji):
        cur.execute("INSERT INTO kanji_text (seq, text, ord) VALUES (%s, %s, %s)", (seq, text, ord_))
    for ord_, text in enumerate(record.kana):
        cur.execute("INSERT INTO kana_text (seq, text, ord) VALUES (%s, %s, %s)", (seq, text, ord_))
    _insert_senses(cur, seq, record.senses)
    logger.debug(f"Inserted entry {seq} ({', '.join(record.kanji + record.kana)})")


@with_transaction(commit=True)
def insert_sense(cur, seq: int, pos_tags: List[str], glosses: List[str]):
    cur.execute("SELECT COALESCE(MAX(ord) + 1, 0) FROM sense WHERE seq = %s", (seq,))
    sense = SenseRecord(pos=list(pos_tags), glosses=list(glosses))
    _insert_senses(cur, seq, [sense], start_ord=cur.fetchone()[0])


@with_transaction(commit=True)
def update_gloss_text(cur, seq: int, old_text: str, new_text: str) -> int:
    cur.execute(
        """
        UPDATE gloss SET text = %s
        WHERE text = %s AND sense_id IN (SELECT id FROM sense WHERE seq = %s)
        """,
        (new_text, old_text, seq),
    )
    return cur.rowcount


def find_entries(cur, text: str, reading: str) -> List[int]:
    cur.execute(
        """
        SELECT DISTINCT r.seq FROM kana_text r
        WHERE r.text = %s
          AND EXISTS (
              SELECT 1 FROM kanji_text k WHERE k.seq = r.seq AND k.text = %s
              UNION ALL
              SELECT 1 FROM kana_text k WHERE k.seq = r.seq AND k.text = %s
          )
        ORDER BY r.seq
        """,
        (reading, text, text),
    )
    return [row[0] for row in cur.fetchall()]


def get_glosses(cur, seq: int) -> List[str]:
    cur.execute(
        """
        SELECT g.text FROM gloss g JOIN sense s ON s.id = g.sense_id
        WHERE s.seq = %s ORDER BY s.ord, g.ord
        """,
        (seq,),
    )
    return [row[0] for row in cur.fetchall()]


# --- Store interface ---
class DictionaryStore(abc.ABC):
    """Operations the custom loader needs from the dictionary."""

    @abc.abstractmethod
    def next_seq(self) -> int:
        """First sequence id not used by any entry."""

    @abc.abstractmethod
    def load_entry(self, document: ET.Element, seq: Optional[int] = None,
                   if_exists: IfExists = IfExists.SKIP) -> int:
        """Store an <entry> document at seq (or its own ent_seq) and return the seq."""

    @abc.abstractmethod
    def add_new_sense(self, seq: int, pos_tags: List[str], glosses: List[str]) -> None:
        """Append a sense to an existing entry."""

    @abc.abstractmethod
    def update_gloss_text(self, seq: int, old_text: str, new_text: str) -> int:
        """Rewrite gloss text under the senses of seq; returns rows changed."""

    @abc.abstractmethod
    def find_entries(self, text: str, reading: str) -> List[int]:
        """Sequence ids having text as a surface form and reading as a kana form."""

    @abc.abstractmethod
    def get_glosses(self, seq: int) -> List[str]:
        """All gloss texts of an entry, in sense order."""


def resolve_document_seq(document: ET.Element, seq: Optional[Union[int, str]]) -> int:
    """Pick the sequence id for load_entry, stamping it into the document."""
    if seq is None:
        record_seq = parse_entry_document(document).seq
        if not isinstance(record_seq, int):
            raise ValueError(f"Entry document has no integer ent_seq: {record_seq!r}")
        seq = record_seq
    if not isinstance(seq, int):
        raise ValueError(f"Sequence id must be an integer, got {seq!r}")
    set_entry_seq(document, seq)
    return seq


class PostgresDictionaryStore(DictionaryStore):
    """DictionaryStore backed by a psycopg2 cursor; shares the cursor's transaction."""

    def __init__(self, cur):
        self.cur = cur

    def next_seq(self) -> int:
        return get_next_seq(self.cur)

    def load_entry(self, document, seq=None, if_exists=IfExists.SKIP):
        seq = resolve_document_seq(document, seq)
        if entry_exists(self.cur, seq):
            if if_exists is IfExists.SKIP:
                logger.debug(f"Entry {seq} exists, skipping")
                return seq
            if if_exists is IfExists.ERROR:
                raise DuplicateEntryError(f"Entry {seq} already exists")
            logger.debug(f"Entry {seq} exists, overwriting")
            delete_entry(self.cur, seq)
        insert_entry_rows(self.cur, parse_entry_document(document), seq)
        return seq

    def add_new_sense(self, seq, pos_tags, glosses):
        insert_sense(self.cur, seq, pos_tags, glosses)

    def update_gloss_text(self, seq, old_text, new_text):
        changed = update_gloss_text(self.cur, seq, old_text, new_text)
        if not changed:
            logger.warning(f"No gloss '{old_text}' found under entry {seq}")
        return changed

    def find_entries(self, text, reading):
        return find_entries(self.cur, text, reading)

    def get_glosses(self, seq):
        return get_glosses(self.cur, seq)
