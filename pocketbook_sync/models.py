from enum import Enum
from pydantic import BaseModel
from typing import Optional

class SyncOutcome(str, Enum):
    NO_DOCUMENT = "no_document"
    INVALID_PATH = "invalid_path"
    NON_LINEAR_FLOW = "non_linear_flow"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    LOOKUP_FAILED = "lookup_failed"
    CIRCUIT_OPEN = "circuit_open"
    DEBOUNCED = "debounced"
    WRITTEN = "written"
    WRITE_FAILED = "write_failed"

class SessionCache(BaseModel):
    """Per-document memo of PocketBook identifiers and the last successful write."""
    book_id: Optional[int] = None
    profile_id: Optional[int] = None
    folder_id: Optional[int] = None
    cached_flow: Optional[int] = None
    last_synced_page: int = -1  # -1 = never synced
    last_sync_timestamp: float = 0
    consecutive_db_errors: int = 0

    def reset(self):
        self.book_id = None
        self.profile_id = None
        self.folder_id = None
        self.cached_flow = None
        self.last_synced_page = -1
        self.last_sync_timestamp = 0
        self.consecutive_db_errors = 0

    def circuit_open(self, threshold: int) -> bool:
        return self.consecutive_db_errors >= threshold

class ReadingPosition(BaseModel):
    folder: str
    file: str
    page: int           # 1-based within the main flow
    total_pages: int
    is_completed: bool
    book_path: str

class LocalProgress(BaseModel):
    """Stored in the document settings under `pocketbook_sync_progress`."""
    ratio: float = 0.0
    percent: int = 0
    current_page: int = 0
    total_pages: int = 0
    last_sync: int = 0

class SyncRecord(BaseModel):
    folder: str
    file: str
    total_pages: int
    page: int           # PocketBook convention, page 1 is stored as 0
    is_completed: bool
    timestamp: int
    book_path: str
