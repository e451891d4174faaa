"""
Single-file resource store with named buckets and scoped transactions.

The store is an SQLite database holding flat key -> bytes buckets. All
reads and writes go through a transaction obtained from
``ResourceStore.transaction`` (or ``view`` for read-only access); the
transaction commits when its block exits normally and rolls back when it
raises, so none is ever left open.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import BuildIOError, NotFoundError

logger = logging.getLogger(__name__)


SPRITESHEETS = "spritesheets"
TEXTURES = "textures"
PICTURES = "pictures"
ANIMATIONS = "animations"
TAGS = "tags"

ALL_BUCKETS = (SPRITESHEETS, TEXTURES, PICTURES, ANIMATIONS, TAGS)

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS buckets (name TEXT PRIMARY KEY NOT NULL)",
    "CREATE TABLE IF NOT EXISTS entries ("
    " bucket TEXT NOT NULL REFERENCES buckets(name) ON DELETE CASCADE,"
    " key TEXT NOT NULL,"
    " value BLOB NOT NULL,"
    " PRIMARY KEY (bucket, key)"
    ") WITHOUT ROWID",
)


class Bucket:
    """A named flat key -> bytes namespace, bound to one transaction."""

    def __init__(self, tx: "Transaction", name: str):
        self._tx = tx
        self.name = name

    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None."""
        row = self._tx._query_one(
            "SELECT value FROM entries WHERE bucket = ? AND key = ?", (self.name, key)
        )
        return bytes(row[0]) if row else None

    def put(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value."""
        self._tx._require_writable()
        self._tx._execute(
            "INSERT INTO entries (bucket, key, value) VALUES (?, ?, ?) "
            "ON CONFLICT (bucket, key) DO UPDATE SET value = excluded.value",
            (self.name, key, sqlite3.Binary(value)),
        )

    def delete(self, key: str) -> None:
        self._tx._require_writable()
        self._tx._execute("DELETE FROM entries WHERE bucket = ? AND key = ?", (self.name, key))

    def keys(self) -> List[str]:
        rows = self._tx._query_all(
            "SELECT key FROM entries WHERE bucket = ? ORDER BY key", (self.name,)
        )
        return [row[0] for row in rows]

    def items(self) -> List[Tuple[str, bytes]]:
        rows = self._tx._query_all(
            "SELECT key, value FROM entries WHERE bucket = ? ORDER BY key", (self.name,)
        )
        return [(row[0], bytes(row[1])) for row in rows]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        row = self._tx._query_one("SELECT COUNT(*) FROM entries WHERE bucket = ?", (self.name,))
        return row[0]


class Transaction:
    """Handle for one open store transaction."""

    def __init__(self, store: "ResourceStore", conn: sqlite3.Connection, writable: bool):
        self._store = store
        self._conn = conn
        self.writable = writable
        self.closed = False

    def bucket(self, name: str) -> Bucket:
        """
        Get an existing bucket.

        Raises:
            NotFoundError: If no bucket with that name exists
        """
        if not self.has_bucket(name):
            raise NotFoundError(f"no {name} bucket present", bucket=name)
        return Bucket(self, name)

    def has_bucket(self, name: str) -> bool:
        return self._query_one("SELECT 1 FROM buckets WHERE name = ?", (name,)) is not None

    def create_bucket_if_not_exists(self, name: str) -> Bucket:
        self._require_writable()
        self._execute("INSERT OR IGNORE INTO buckets (name) VALUES (?)", (name,))
        return Bucket(self, name)

    def delete_bucket(self, name: str) -> None:
        self._require_writable()
        self.bucket(name)
        self._execute("DELETE FROM entries WHERE bucket = ?", (name,))
        self._execute("DELETE FROM buckets WHERE name = ?", (name,))

    def bucket_names(self) -> List[str]:
        return [row[0] for row in self._query_all("SELECT name FROM buckets ORDER BY name")]

    def _require_open(self) -> None:
        if self.closed:
            raise BuildIOError("transaction has already been closed")

    def _require_writable(self) -> None:
        self._require_open()
        if not self.writable:
            raise BuildIOError("cannot write in a read-only transaction")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        self._require_open()
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise BuildIOError(f"store operation failed on {self._store.path}: {e}") from e

    def _query_one(self, sql: str, params: tuple = ()):
        return self._execute(sql, params).fetchone()

    def _query_all(self, sql: str, params: tuple = ()):
        return self._execute(sql, params).fetchall()


class ResourceStore:
    """
    Transactional resource file holding named buckets.

    Usage:
        with ResourceStore("stage.res") as store:
            with store.transaction() as tx:
                tx.create_bucket_if_not_exists("animations").put("walk", data)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._in_transaction = False

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "ResourceStore":
        """Open (creating if needed) the store file with read/write access."""
        if self._conn is not None:
            return self

        if self.path.is_dir():
            raise BuildIOError(f"cannot open resource store {self.path}: is a directory")

        try:
            # Transactions are managed explicitly below
            conn = sqlite3.connect(str(self.path), isolation_level=None)
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("BEGIN IMMEDIATE")
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise BuildIOError(f"cannot open resource store {self.path}: {e}") from e

        self._conn = conn
        logger.debug(f"Opened resource store {self.path}")
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug(f"Closed resource store {self.path}")

    def __enter__(self) -> "ResourceStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def transaction(self, writable: bool = True) -> Iterator[Transaction]:
        """
        Scoped transaction: commits on normal exit, rolls back on error.

        Args:
            writable: Open a read/write transaction (default) or read-only

        Raises:
            BuildIOError: If the store is closed, a transaction is already
                open, or the commit fails
        """
        if self._conn is None:
            raise BuildIOError(f"resource store {self.path} is not open")
        if self._in_transaction:
            raise BuildIOError("a transaction is already open on this store")

        conn = self._conn
        try:
            conn.execute("BEGIN IMMEDIATE" if writable else "BEGIN DEFERRED")
        except sqlite3.Error as e:
            raise BuildIOError(f"cannot begin transaction on {self.path}: {e}") from e

        self._in_transaction = True
        tx = Transaction(self, conn, writable)
        try:
            yield tx
        except BaseException:
            tx.closed = True
            self._rollback()
            raise
        else:
            tx.closed = True
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                raise BuildIOError(f"commit failed on {self.path}: {e}") from e
        finally:
            self._in_transaction = False

    def view(self):
        """Read-only transaction."""
        return self.transaction(writable=False)

    def contents(self) -> Dict[str, Dict[str, bytes]]:
        """Snapshot of every bucket's entries, for inspection and comparison."""
        with self.view() as tx:
            return {name: dict(tx.bucket(name).items()) for name in tx.bucket_names()}

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            # Nothing left to roll back once SQLite aborted the transaction itself
            logger.debug(f"Rollback on {self.path} reported: {e}")
