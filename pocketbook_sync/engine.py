import logging
import math
import posixpath
import time
from typing import Callable, Optional, Tuple

from .clients.pocketbook_db import PocketBookDB
from .config import Settings
from .errors import NotFound
from .host import CollectionStore, Device, Document, SettingsStore
from .models import LocalProgress, ReadingPosition, SessionCache, SyncOutcome, SyncRecord
from .resolver import IdentifierResolver
from .shelves import CollectionMaintainer
from .writer import ProgressWriter

logger = logging.getLogger(__name__)

PROGRESS_SETTING_KEY = "pocketbook_sync_progress"
SESSION_END_RESETS = ("close", "exit")

def split_folder_file(path: Optional[str]) -> Tuple[str, str]:
    """'/mnt/ext1/Books/novel.epub' -> ('/mnt/ext1/Books', 'novel.epub')"""
    if not path:
        return "", ""
    folder, file = posixpath.split(path)
    if folder != "/":
        return folder, file
    return "", file

class SyncEngine:
    """
    Mirrors the reading position of the open document into the PocketBook
    library database on close, suspend and exit.
    """

    def __init__(self, db: PocketBookDB, device: Device, global_settings: SettingsStore,
                 collections: CollectionStore, settings: Settings,
                 clock: Callable[[], float] = time.time):
        self.settings = settings
        self.clock = clock
        self.cache = SessionCache()
        self.resolver = IdentifierResolver(db, device, self.cache, settings)
        self.writer = ProgressWriter(db, self.cache, settings, clock)
        self.maintainer = CollectionMaintainer(db, global_settings, collections)

        self.document: Optional[Document] = None
        self.doc_settings: Optional[SettingsStore] = None

    def open_document(self, document: Document, doc_settings: SettingsStore):
        self.document = document
        self.doc_settings = doc_settings
        self.cache.reset()
        logger.debug(f"Tracking {document.file}")

    # Session-end events

    def on_close_document(self) -> SyncOutcome:
        logger.debug("onCloseDocument triggered")
        return self.handle_session_end("close")

    def on_suspend(self) -> SyncOutcome:
        logger.debug("onSuspend triggered")
        return self.handle_session_end("suspend")

    def on_exit(self) -> SyncOutcome:
        logger.debug("onExit triggered")
        # close and exit both fire for a single quit
        last_sync = self.cache.last_sync_timestamp
        if last_sync and self.clock() - last_sync < self.settings.EXIT_DEBOUNCE_SECONDS:
            logger.debug("Skipping exit sync - recently synced")
            return SyncOutcome.DEBOUNCED
        return self.handle_session_end("exit")

    def handle_session_end(self, source: str) -> SyncOutcome:
        if self.document is None:
            logger.debug("No document open, skipping sync")
            return SyncOutcome.NO_DOCUMENT

        try:
            return self.sync()
        finally:
            # Identifiers stay warm across suspend/resume
            if source in SESSION_END_RESETS:
                self.cache.reset()
                self.document = None
                self.doc_settings = None

    # Sync

    def sync(self) -> SyncOutcome:
        if self.document is None:
            return SyncOutcome.NO_DOCUMENT

        if self.cache.circuit_open(self.settings.MAX_CONSECUTIVE_DB_ERRORS):
            logger.error("Too many database errors, sync disabled until the document is closed")
            self.refresh_local_progress()
            return SyncOutcome.CIRCUIT_OPEN

        position = self.refresh_local_progress()
        if isinstance(position, SyncOutcome):
            return position

        return self._do_sync(self.build_record(position))

    def read_position(self):
        """Current position in the main flow, or the SyncOutcome explaining why there is none."""
        document = self.document
        if document is None:
            return SyncOutcome.NO_DOCUMENT

        folder, file = split_folder_file(document.file)
        if not folder or not file:
            logger.warning("Invalid folder or file path")
            return SyncOutcome.INVALID_PATH

        global_page = document.current_page

        # The flow of a document never changes while it is open
        if self.cache.cached_flow is None:
            self.cache.cached_flow = document.get_page_flow(global_page)
        flow = self.cache.cached_flow

        if flow != 0:
            logger.debug("Skipping non-linear flow")
            return SyncOutcome.NON_LINEAR_FLOW

        total_pages = document.get_total_pages_in_flow(flow)
        page = document.get_page_number_in_flow(global_page)

        summary = self.doc_settings.read_setting("summary") if self.doc_settings is not None else None
        status = summary.get("status") if isinstance(summary, dict) else None

        return ReadingPosition(
            folder=folder,
            file=file,
            page=page,
            total_pages=total_pages,
            is_completed=(status == "complete" or page == total_pages),
            book_path=document.file,
        )

    def refresh_local_progress(self):
        """
        Stores the current position under `pocketbook_sync_progress` in the
        document settings, independent of the PocketBook database.
        """
        position = self.read_position()
        if isinstance(position, SyncOutcome):
            return position

        ratio = position.page / position.total_pages if position.total_pages > 0 else 0
        progress = LocalProgress(
            ratio=ratio,
            percent=math.ceil(ratio * 100),
            current_page=position.page,
            total_pages=position.total_pages,
            last_sync=int(self.clock()),
        )
        self.doc_settings.save_setting(PROGRESS_SETTING_KEY, progress.model_dump())
        return position

    def build_record(self, position: ReadingPosition) -> SyncRecord:
        # PocketBook counts from 0 on the first page
        page = 0 if position.page == 1 else position.page
        return SyncRecord(
            folder=position.folder,
            file=position.file,
            total_pages=position.total_pages,
            page=page,
            is_completed=position.is_completed,
            timestamp=int(self.clock()),
            book_path=position.book_path,
        )

    def _do_sync(self, record: SyncRecord) -> SyncOutcome:
        # A completion must never be lost to the same-page check
        if record.page == self.cache.last_synced_page and not record.is_completed:
            logger.debug("Same page, skipping sync")
            return SyncOutcome.UNCHANGED

        try:
            book_id = self.resolver.book_id(record.folder, record.file)
        except NotFound as e:
            logger.info(str(e))
            return SyncOutcome.NOT_FOUND
        except Exception as e:
            logger.error(f"Book lookup failed: {e}")
            return SyncOutcome.LOOKUP_FAILED

        profile_id = self.resolver.profile_id()
        if not self.writer.write(book_id, profile_id, record):
            return SyncOutcome.WRITE_FAILED

        if record.is_completed:
            self.maintainer.on_book_completed(book_id, record.book_path)
        return SyncOutcome.WRITTEN
