import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional
from app.core.errors import NotFoundError, PersistenceError
from app.schemas.edit_requests import EditRequest, EditRequestFilter, Reply
from app.services.edit_request_store import (
    EditRequestStore,
    MUTABLE_FIELDS,
    format_ts,
    matches_search,
    parse_ts,
)


class SQLiteEditRequestStore(EditRequestStore):
    """
    Edit requests in SQLite.

    Replies live in their own append-only table, so adding one is a single
    INSERT instead of rewriting the thread.
    """

    hydrate_batch_size = 500

    def __init__(self, db_path: str = "edit_requests.db"):
        """Initialize SQLite store (connection opens on first use)"""
        self.db_path = Path(db_path)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self.connect()
        return self._connection

    def connect(self):
        """Connect to SQLite database"""
        with self._lock:
            if self._connection is not None:
                return
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row  # Access columns by name
            self._create_tables()

    def _create_tables(self):
        """Create database tables if they don't exist"""
        cursor = self._connection.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS edit_requests (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                page_url TEXT NOT NULL,
                section_id TEXT,
                message TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                submitted_by TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # Tenant-scoped listing is the hot path
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_edit_requests_project_created
            ON edit_requests(project_id, created_at)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS edit_request_replies (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                request_id TEXT NOT NULL REFERENCES edit_requests(id),
                message TEXT NOT NULL,
                sender TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_edit_request_replies_request
            ON edit_request_replies(request_id, seq)
        """)

        self._connection.commit()

    def insert(self, record: EditRequest) -> EditRequest:
        def write(cursor):
            cursor.execute("""
                INSERT INTO edit_requests
                    (id, project_id, page_url, section_id, message, status, submitted_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                record.id,
                record.project_id,
                record.page_url,
                record.section_id,
                record.message,
                record.status,
                record.submitted_by,
                format_ts(record.created_at),
                format_ts(record.updated_at)
            ))
            for reply in record.replies:
                self._insert_reply(cursor, record.id, reply)

        self._write(write)
        return self.select_one(record.id)

    def select_one(self, request_id: str) -> Optional[EditRequest]:
        rows = self._read("SELECT * FROM edit_requests WHERE id = ?", (request_id,))
        if not rows:
            return None
        return self._hydrate(rows)[0]

    def select_many(self, filters: EditRequestFilter) -> List[EditRequest]:
        clauses = []
        params = []
        for column in ("project_id", "page_url", "status"):
            value = getattr(filters, column)
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)

        query = "SELECT * FROM edit_requests"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC, rowid DESC"

        requests = self._hydrate(self._read(query, tuple(params)))
        return [r for r in requests if matches_search(r, filters.search_text)]

    def update(self, request_id: str, fields: Dict[str, Any]) -> EditRequest:
        changes = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}
        if "updated_at" in changes:
            changes["updated_at"] = format_ts(changes["updated_at"])

        def write(cursor):
            if not changes:
                cursor.execute("SELECT 1 FROM edit_requests WHERE id = ?", (request_id,))
                if cursor.fetchone() is None:
                    raise NotFoundError(request_id)
                return
            assignments = ", ".join(f"{column} = ?" for column in changes)
            cursor.execute(
                f"UPDATE edit_requests SET {assignments} WHERE id = ?",
                (*changes.values(), request_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(request_id)

        self._write(write)
        return self.select_one(request_id)

    def append_reply(self, request_id: str, reply: Reply) -> EditRequest:
        def write(cursor):
            cursor.execute(
                "UPDATE edit_requests SET updated_at = ? WHERE id = ?",
                (format_ts(reply.timestamp), request_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(request_id)
            self._insert_reply(cursor, request_id, reply)

        self._write(write)
        return self.select_one(request_id)

    def check_health(self) -> bool:
        try:
            self._read("SELECT 1", ())
            return True
        except PersistenceError:
            return False

    def close(self):
        """Close database connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    @staticmethod
    def _insert_reply(cursor, request_id: str, reply: Reply):
        cursor.execute("""
            INSERT INTO edit_request_replies (id, request_id, message, sender, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (reply.id, request_id, reply.message, reply.sender, format_ts(reply.timestamp)))

    def _write(self, operation):
        """Run `operation(cursor)` in one transaction"""
        with self._lock:
            connection = self.connection
            cursor = connection.cursor()
            try:
                operation(cursor)
                connection.commit()
            except NotFoundError:
                connection.rollback()
                raise
            except sqlite3.Error as e:
                connection.rollback()
                raise PersistenceError(f"SQLite write failed: {e}") from e

    def _read(self, query: str, params: tuple) -> List[sqlite3.Row]:
        with self._lock:
            try:
                cursor = self.connection.cursor()
                cursor.execute(query, params)
                return cursor.fetchall()
            except sqlite3.Error as e:
                raise PersistenceError(f"SQLite read failed: {e}") from e

    def _hydrate(self, rows: List[sqlite3.Row]) -> List[EditRequest]:
        """Attach replies (in append order) to request rows"""
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        reply_rows = []
        # Stay under SQLITE_MAX_VARIABLE_NUMBER (999 on older builds)
        for start in range(0, len(ids), self.hydrate_batch_size):
            batch = ids[start:start + self.hydrate_batch_size]
            placeholders = ", ".join("?" for _ in batch)
            reply_rows.extend(self._read(f"""
                SELECT request_id, id, message, sender, created_at
                FROM edit_request_replies
                WHERE request_id IN ({placeholders})
                ORDER BY seq ASC
            """, tuple(batch)))

        replies: Dict[str, List[Reply]] = {request_id: [] for request_id in ids}
        for row in reply_rows:
            replies[row["request_id"]].append(Reply(
                id=row["id"],
                message=row["message"],
                sender=row["sender"],
                timestamp=parse_ts(row["created_at"])
            ))

        return [
            EditRequest(
                id=row["id"],
                page_url=row["page_url"],
                section_id=row["section_id"],
                message=row["message"],
                status=row["status"],
                project_id=row["project_id"],
                submitted_by=row["submitted_by"],
                replies=replies[row["id"]],
                created_at=parse_ts(row["created_at"]),
                updated_at=parse_ts(row["updated_at"])
            )
            for row in rows
        ]
