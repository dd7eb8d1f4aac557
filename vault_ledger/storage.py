"""
Storage Backend Module

Provides the record store adapter used by the wallet, vault and deduction
engines: an abstract interface plus in-memory (testing), SQLite and PostgreSQL
implementations. All monetary values are stored as Decimal strings.

Balance changes rely on two store primitives instead of application locks:

* ``update_where`` is a conditional update (compare-and-swap). It only touches
  rows whose current fields equal the given filters and reports how many rows
  changed.
* ``atomic()`` groups several reads and writes into one store transaction that
  commits or rolls back as a unit. Nested blocks join the outermost one.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from decimal import Decimal
from datetime import date, datetime, timezone
from enum import Enum
import copy
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager

from .errors import StoreError, DuplicateRecordError


def _to_storable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _matches(record: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, value in filters.items():
        if record.get(key) != _to_storable(value):
            return False
    return True


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        for key, value in result.items():
            result[key] = _to_storable(value)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        data = dict(data)
        if 'created_at' in data and isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if 'updated_at' in data and isinstance(data['updated_at'], str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])
        return cls(**data)


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert a new record, failing with DuplicateRecordError if the id exists"""
        pass

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert or replace a record"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def update_where(self, table: str, filters: Dict[str, Any],
                     updates: Dict[str, Any]) -> int:
        """
        Merge ``updates`` into every record whose fields equal ``filters``.

        Returns:
            Number of records updated. Zero means the expected state was not found.
        """
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def find_one(self, table: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """First record matching filters, or None"""
        results = self.find(table, filters)
        return results[0] if results else None

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        else:
            self.commit()


class InMemoryStorage(StorageInterface):
    """
    In-memory storage implementation for testing.

    A transaction holds the store lock for its whole duration and restores a
    snapshot of the data on rollback.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._depth = 0
        self._snapshot: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[table] = {}

    @staticmethod
    def _copy(data: Dict[str, Any]) -> Dict[str, Any]:
        return json.loads(json.dumps(data, default=str))

    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                raise DuplicateRecordError(f"Record {record_id} already exists in {table}")
            self._data[table][record_id] = self._copy(data)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            # Deep copy to prevent external mutation
            self._data[table][record_id] = self._copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                return self._copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [self._copy(record) for record in self._data[table].values()]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            self._ensure_table(table)
            return [
                self._copy(record) for record in self._data[table].values()
                if _matches(record, filters)
            ]

    def update_where(self, table: str, filters: Dict[str, Any],
                     updates: Dict[str, Any]) -> int:
        with self._lock:
            self._ensure_table(table)
            changes = {key: _to_storable(value) for key, value in updates.items()}
            updated = 0
            for record in self._data[table].values():
                if _matches(record, filters):
                    record.update(self._copy(changes))
                    updated += 1
            return updated

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                del self._data[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._data[table] = {}

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def begin_transaction(self) -> None:
        self._lock.acquire()
        if self._depth == 0:
            self._snapshot = copy.deepcopy(self._data)
        self._depth += 1

    def commit(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._snapshot = None
        self._lock.release()

    def rollback(self) -> None:
        self._depth -= 1
        if self._depth == 0 and self._snapshot is not None:
            self._data = self._snapshot
            self._snapshot = None
        self._lock.release()


class SQLiteStorage(StorageInterface):
    """
    SQLite storage implementation for persistence.

    Transactions use ``BEGIN IMMEDIATE`` so the write lock is taken up front and
    read-modify-write sequences are serialized across connections and processes.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:", timeout: float = 30.0):
        self.db_path = str(db_path)
        # Autocommit mode; transactions are opened explicitly
        self._connection = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None, timeout=timeout
        )
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        self._tables: set = set()

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")

    @contextmanager
    def _store_errors(self):
        try:
            yield
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(str(e)) from e
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._connection.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._tables.add(table)

    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock, self._store_errors():
            self._ensure_table(table)
            now = datetime.now(timezone.utc).isoformat()
            self._connection.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
            """, (record_id, json.dumps(data, default=str), now, now))

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock, self._store_errors():
            self._ensure_table(table)

            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)

            # Use INSERT OR REPLACE to handle updates
            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (record_id, data_json, record_id, now, now))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock, self._store_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock, self._store_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY created_at
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        return [record for record in self.load_all(table) if _matches(record, filters)]

    def update_where(self, table: str, filters: Dict[str, Any],
                     updates: Dict[str, Any]) -> int:
        changes = {key: _to_storable(value) for key, value in updates.items()}
        with self.atomic(), self._store_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT id, data FROM {table}")
            matched = []
            for row in cursor.fetchall():
                record = json.loads(row['data'])
                if _matches(record, filters):
                    record.update(changes)
                    matched.append((row['id'], record))

            now = datetime.now(timezone.utc).isoformat()
            for record_id, record in matched:
                self._connection.execute(f"""
                    UPDATE {table} SET data = ?, updated_at = ? WHERE id = ?
                """, (json.dumps(record, default=str), now, record_id))
            return len(matched)

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from SQLite"""
        with self._lock, self._store_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock, self._store_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock, self._store_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock, self._store_errors():
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        self._lock.acquire()
        if self._depth == 0:
            try:
                with self._store_errors():
                    self._connection.execute("BEGIN IMMEDIATE")
            except StoreError:
                self._lock.release()
                raise
        self._depth += 1

    def commit(self) -> None:
        """Commit current transaction"""
        try:
            if self._depth == 1:
                try:
                    self._connection.execute("COMMIT")
                except sqlite3.Error as e:
                    if self._connection.in_transaction:
                        self._connection.execute("ROLLBACK")
                    raise StoreError(str(e)) from e
        finally:
            self._depth -= 1
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        try:
            if self._depth == 1 and self._connection.in_transaction:
                # Tables created inside the transaction are gone too
                self._tables.clear()
                with self._store_errors():
                    self._connection.execute("ROLLBACK")
        finally:
            self._depth -= 1
            self._lock.release()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class PostgreSQLStorage(StorageInterface):
    """PostgreSQL storage backend with ACID transaction support"""

    def __init__(self, connection_string: str):
        try:
            import psycopg2
            import psycopg2.extras
            self.psycopg2 = psycopg2
            self.extras = psycopg2.extras
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self._connection = None
        self._lock = threading.RLock()
        self._depth = 0
        self._tables: set = set()
        self._connect()

    def _connect(self) -> None:
        """Establish database connection"""
        with self._lock:
            self._connection = self.psycopg2.connect(
                self.connection_string,
                cursor_factory=self.extras.RealDictCursor
            )
            self._connection.autocommit = False  # We handle transactions manually

    @contextmanager
    def _cursor(self):
        """Cursor that commits on its own when no transaction is open"""
        with self._lock:
            cursor = self._connection.cursor()
            try:
                yield cursor
                if self._depth == 0:
                    self._connection.commit()
            except self.psycopg2.IntegrityError as e:
                if self._depth == 0:
                    self._connection.rollback()
                raise DuplicateRecordError(str(e)) from e
            except self.psycopg2.Error as e:
                if self._depth == 0:
                    self._connection.rollback()
                raise StoreError(str(e)) from e
            finally:
                cursor.close()

    def _ensure_table(self, cursor, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return
        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data JSONB NOT NULL,
                created_at TIMESTAMP DEFAULT NOW(),
                updated_at TIMESTAMP DEFAULT NOW()
            )
        """)
        cursor.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_data
            ON {table} USING gin(data)
        """)
        self._tables.add(table)

    @staticmethod
    def _where(filters: Dict[str, Any]):
        conditions = []
        params: List[Any] = []
        for key, value in filters.items():
            value = _to_storable(value)
            if value is None:
                conditions.append("(data ->> %s) IS NULL")
                params.append(key)
            else:
                conditions.append("data ->> %s = %s")
                params.extend([key, str(value)])
        return " AND ".join(conditions) or "TRUE", params

    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (%s, %s, %s, %s)
            """, (record_id, json.dumps(data, default=str), now, now))

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to PostgreSQL using UPSERT"""
        now = datetime.now(timezone.utc)
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    data = EXCLUDED.data,
                    updated_at = EXCLUDED.updated_at
            """, (record_id, json.dumps(data, default=str), now, now))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from PostgreSQL"""
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT data FROM {table} WHERE id = %s", (record_id,))
            row = cursor.fetchone()
            return dict(row['data']) if row else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        return self.find(table, {})

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters using JSONB operators"""
        where_clause, params = self._where(filters)
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"""
                SELECT data FROM {table}
                WHERE {where_clause}
                ORDER BY created_at
            """, params)
            return [dict(row['data']) for row in cursor.fetchall()]

    def update_where(self, table: str, filters: Dict[str, Any],
                     updates: Dict[str, Any]) -> int:
        """Single-statement conditional update"""
        changes = {key: _to_storable(value) for key, value in updates.items()}
        where_clause, params = self._where(filters)
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"""
                UPDATE {table}
                SET data = data || %s::jsonb, updated_at = %s
                WHERE {where_clause}
            """, [json.dumps(changes, default=str), datetime.now(timezone.utc)] + params)
            return cursor.rowcount

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from PostgreSQL"""
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"DELETE FROM {table} WHERE id = %s", (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT 1 FROM {table} WHERE id = %s LIMIT 1", (record_id,))
            return cursor.fetchone() is not None

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"DELETE FROM {table}")

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        # PostgreSQL transactions start automatically with the first statement
        self._lock.acquire()
        self._depth += 1

    def commit(self) -> None:
        """Commit current transaction"""
        try:
            if self._depth == 1:
                try:
                    self._connection.commit()
                except self.psycopg2.Error as e:
                    self._connection.rollback()
                    raise StoreError(str(e)) from e
        finally:
            self._depth -= 1
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        try:
            if self._depth == 1:
                self._tables.clear()
                self._connection.rollback()
        finally:
            self._depth -= 1
            self._lock.release()

    def close(self) -> None:
        """Close PostgreSQL connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Build a storage backend from a database URL.

    Supported forms: ``memory://``, ``sqlite:///path/to.db`` (or
    ``sqlite:///:memory:``) and ``postgresql://...``.
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage()
    if database_url.startswith("sqlite:///"):
        return SQLiteStorage(database_url[len("sqlite:///"):] or ":memory:")
    if database_url.startswith(("postgresql://", "postgres://")):
        return PostgreSQLStorage(database_url)
    raise ValueError(f"Unsupported database URL: {database_url}")
