import logging
import time
from typing import Callable, List, Optional

from .clients.inkview import InkviewDevice
from .clients.pocketbook_db import PocketBookDB
from .config import Settings, settings as default_settings
from .engine import SyncEngine
from .host import CollectionStore, Device, Document, SettingsStore
from .models import SyncOutcome
from .state import JsonCollectionStore, JsonSettingsStore

logger = logging.getLogger("main")

END_ACTION_KEY = "end_document_action"
SHOW_SUMMARY_VALUE = "show_book_summary"

SummaryViewer = Callable[[Document, SettingsStore], None]

def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # Silence noisy libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

class PocketBookTools:
    """
    Entry point the reader application drives: forwards its lifecycle events to
    the SyncEngine and never lets an error escape back into the reader.
    """

    def __init__(self, settings: Settings, db: PocketBookDB, device: Device,
                 global_settings: SettingsStore, collections: CollectionStore,
                 summary_viewer: Optional[SummaryViewer] = None,
                 clock: Callable[[], float] = time.time):
        self.settings = settings
        self.db = db
        self.device = device
        self.global_settings = global_settings
        self.summary_viewer = summary_viewer
        self.engine = SyncEngine(db, device, global_settings, collections, settings, clock)

    @classmethod
    def from_settings(cls, settings: Settings = default_settings, device: Optional[Device] = None,
                      summary_viewer: Optional[SummaryViewer] = None) -> "PocketBookTools":
        setup_logging(settings.LOG_LEVEL)
        db = PocketBookDB(settings.POCKETBOOK_DB_PATH, settings.DB_BUSY_TIMEOUT_MS)
        return cls(
            settings,
            db,
            device or InkviewDevice(),
            JsonSettingsStore(settings.HOST_SETTINGS_PATH, persist=settings.PERSIST_ENABLED),
            JsonCollectionStore(settings.HOST_COLLECTIONS_PATH, persist=settings.PERSIST_ENABLED),
            summary_viewer,
        )

    def open_document(self, document: Document, doc_settings: Optional[SettingsStore] = None):
        if doc_settings is None:
            doc_settings = JsonSettingsStore(
                document.file + self.settings.HOST_DOC_SETTINGS_SUFFIX,
                persist=self.settings.PERSIST_ENABLED,
            )
        self.engine.open_document(document, doc_settings)

    def _guarded(self, label: str, fn: Callable[[], SyncOutcome]) -> Optional[SyncOutcome]:
        try:
            outcome = fn()
            logger.debug(f"{label}: {outcome.value}")
            return outcome
        except Exception as e:
            logger.error(f"Error in {label}: {e}", exc_info=True)
            return None

    # Reader events

    def on_close_document(self) -> Optional[SyncOutcome]:
        return self._guarded("close sync", self.engine.on_close_document)

    def on_suspend(self) -> Optional[SyncOutcome]:
        # Screen capture for the sleep cover, only here
        try:
            self.device.page_snapshot()
        except Exception as e:
            logger.warning(f"PageSnapshot failed: {e}")
        return self._guarded("suspend sync", self.engine.on_suspend)

    def on_exit(self) -> Optional[SyncOutcome]:
        return self._guarded("exit sync", self.engine.on_exit)

    def on_show_book_summary(self) -> bool:
        if self.engine.document is None:
            logger.info("No document open")
            return True

        try:
            self.engine.refresh_local_progress()
            logger.debug("Progress data updated for summary dialog")
        except Exception as e:
            logger.warning(f"Failed to refresh progress before summary: {e}")

        if self.summary_viewer is not None:
            try:
                self.summary_viewer(self.engine.document, self.engine.doc_settings)
            except Exception as e:
                logger.error(f"Summary dialog failed: {e}", exc_info=True)
        return True

    def on_end_of_book(self) -> bool:
        if self.global_settings.read_setting(END_ACTION_KEY) != SHOW_SUMMARY_VALUE:
            return False

        if self.engine.doc_settings is not None:
            try:
                self.engine.doc_settings.flush()
            except Exception as e:
                logger.warning(f"Failed to flush document settings: {e}")
        return self.on_show_book_summary()

    # Collection settings

    def list_collections(self) -> List[str]:
        return self.engine.maintainer.list_collections()

    def select_collection(self, name: str) -> Optional[int]:
        return self.engine.maintainer.select_collection(name)

    def clear_collection(self):
        self.engine.maintainer.clear_collection()

    def enable_summary_on_end(self):
        self.global_settings.save_setting(END_ACTION_KEY, SHOW_SUMMARY_VALUE)
        self.global_settings.flush()

    def close(self):
        self.db.close()
