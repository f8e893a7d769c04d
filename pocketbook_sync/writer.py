import logging
import time
from typing import Callable

from .clients.pocketbook_db import PocketBookDB
from .config import Settings
from .errors import CircuitOpen, TransactionFailure
from .models import SessionCache, SyncRecord

logger = logging.getLogger(__name__)

class ProgressWriter:
    def __init__(self, db: PocketBookDB, cache: SessionCache, settings: Settings,
                 clock: Callable[[], float] = time.time):
        self.db = db
        self.cache = cache
        self.settings = settings
        self.clock = clock

    def write(self, book_id: int, profile_id: int, record: SyncRecord) -> bool:
        """
        Replaces the (book_id, profile_id) row of books_settings in one
        transaction. Returns False on failure; the error is counted, never raised.
        """
        if self.cache.circuit_open(self.settings.MAX_CONSECUTIVE_DB_ERRORS):
            raise CircuitOpen(self.cache.consecutive_db_errors)

        try:
            with self.db.transaction(TransactionFailure):
                self.db.replace_progress(
                    book_id, profile_id, record.page, record.total_pages,
                    record.is_completed, record.timestamp
                )
        except TransactionFailure as e:
            self.cache.consecutive_db_errors += 1
            logger.error(
                f"DB write failed for book {book_id} "
                f"({self.cache.consecutive_db_errors}/{self.settings.MAX_CONSECUTIVE_DB_ERRORS}): {e}"
            )
            return False

        self.cache.consecutive_db_errors = 0
        self.cache.last_synced_page = record.page
        self.cache.last_sync_timestamp = self.clock()
        logger.debug(f"Progress updated - page {record.page}/{record.total_pages}")
        return True
