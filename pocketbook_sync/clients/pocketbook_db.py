import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Type

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PocketBookSyncError, TransactionFailure

logger = logging.getLogger(__name__)

FOLDER_ID_SQL = text("SELECT id FROM folders WHERE name = :name LIMIT 1")
BOOK_ID_SQL = text("SELECT book_id FROM files WHERE folder_id = :folder_id AND filename = :filename LIMIT 1")
PROFILE_ID_SQL = text("SELECT id FROM profiles WHERE name = :name")
COLLECTION_ID_SQL = text("SELECT id FROM bookshelfs WHERE name = :name AND is_deleted != 1 LIMIT 1")
MEMBERSHIP_SQL = text(
    "SELECT bookshelfid FROM bookshelfs_books "
    "WHERE bookid = :book_id AND bookshelfid = :collection_id LIMIT 1"
)
DELETE_MEMBERSHIP_SQL = text(
    "DELETE FROM bookshelfs_books WHERE bookid = :book_id AND bookshelfid = :collection_id"
)
REPLACE_PROGRESS_SQL = text(
    "REPLACE INTO books_settings (bookid, profileid, cpage, npage, completed, opentime) "
    "VALUES (:book_id, :profile_id, :page, :total_pages, :completed, :opentime)"
)

class PocketBookDB:
    """
    Single long-lived handle on the PocketBook library database (explorer-3.db).
    Every statement runs inside an explicit transaction so the connection never
    holds an implicit one between calls.
    """

    def __init__(self, path: str, busy_timeout_ms: int = 2000):
        self.path = path
        # sqlite3 turns `timeout` into sqlite3_busy_timeout()
        self.engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"timeout": busy_timeout_ms / 1000.0},
        )
        self.conn: Connection = self.engine.connect()
        logger.info(f"Opened PocketBook database {path} (busy timeout {busy_timeout_ms}ms)")

    def close(self):
        self.conn.close()
        self.engine.dispose()

    def _scalar(self, statement, params: Dict[str, Any]) -> Optional[Any]:
        with self.conn.begin():
            row = self.conn.execute(statement, params).first()
        return row[0] if row is not None else None

    @contextmanager
    def transaction(self, failure: Type[PocketBookSyncError] = TransactionFailure) -> Iterator[Connection]:
        """
        begin -> body -> commit. Any error rolls back (best effort) and is
        re-raised as `failure`.
        """
        try:
            trans = self.conn.begin()
        except Exception as e:
            raise failure(f"BEGIN failed: {e}") from e

        try:
            yield self.conn
            trans.commit()
        except Exception as e:
            self._rollback(trans)
            raise failure(str(e)) from e

    def _rollback(self, trans):
        try:
            if trans.is_active:
                trans.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback failed: {e}")

        # A failed COMMIT (e.g. SQLITE_BUSY) deactivates `trans` but leaves the
        # sqlite transaction open, holding the lock on the device database.
        try:
            raw = self.conn.connection.dbapi_connection
            if raw is not None and raw.in_transaction:
                raw.rollback()
        except Exception as e:
            logger.warning(f"Driver-level rollback failed: {e}")

    # Lookups

    def find_folder_id(self, name: str) -> Optional[int]:
        return self._scalar(FOLDER_ID_SQL, {"name": name})

    def find_book_id(self, folder_id: int, filename: str) -> Optional[int]:
        return self._scalar(BOOK_ID_SQL, {"folder_id": folder_id, "filename": filename})

    def find_profile_id(self, name: str) -> Optional[int]:
        return self._scalar(PROFILE_ID_SQL, {"name": name})

    def find_collection_id(self, name: str) -> Optional[int]:
        value = self._scalar(COLLECTION_ID_SQL, {"name": name})
        return int(value) if value is not None else None

    def is_in_collection(self, book_id: int, collection_id: int) -> bool:
        return self._scalar(MEMBERSHIP_SQL, {"book_id": book_id, "collection_id": collection_id}) is not None

    # Writes, called inside transaction()

    def replace_progress(self, book_id: int, profile_id: int, page: int, total_pages: int,
                         completed: bool, opentime: int):
        self.conn.execute(REPLACE_PROGRESS_SQL, {
            "book_id": book_id,
            "profile_id": profile_id,
            "page": page,
            "total_pages": total_pages,
            "completed": 1 if completed else 0,
            "opentime": opentime,
        })

    def delete_membership(self, book_id: int, collection_id: int):
        self.conn.execute(DELETE_MEMBERSHIP_SQL, {"book_id": book_id, "collection_id": collection_id})
