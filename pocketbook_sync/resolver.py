import logging
from typing import Optional

from .clients.pocketbook_db import PocketBookDB
from .config import Settings
from .errors import BookNotFound, FolderNotFound
from .host import Device
from .models import SessionCache

logger = logging.getLogger(__name__)

class IdentifierResolver:
    """
    Maps the open document onto PocketBook ids. Every id is looked up at most
    once per document session and then served from the SessionCache.
    """

    def __init__(self, db: PocketBookDB, device: Device, cache: SessionCache, settings: Settings):
        self.db = db
        self.device = device
        self.cache = cache
        self.settings = settings

    def book_id(self, folder: str, file: str) -> int:
        """Raises FolderNotFound / BookNotFound, or SQLAlchemyError on a broken database."""
        if self.cache.book_id is not None:
            return self.cache.book_id

        if self.cache.folder_id is None:
            folder_id = self.db.find_folder_id(folder)
            if folder_id is None:
                raise FolderNotFound(f"Folder not found: {folder}")
            self.cache.folder_id = folder_id
            logger.debug(f"Resolved folder '{folder}' to id {folder_id}")

        book_id = self.db.find_book_id(self.cache.folder_id, file)
        if book_id is None:
            raise BookNotFound(f"Book not found in PocketBook database: {folder}/{file}")

        self.cache.book_id = book_id
        logger.info(f"Resolved {folder}/{file} to PocketBook book id {book_id}")
        return book_id

    def profile_id(self) -> int:
        if self.cache.profile_id is not None:
            return self.cache.profile_id

        default = self.settings.DEFAULT_PROFILE_ID
        profile_name: Optional[str] = None
        try:
            profile_name = self.device.current_profile_name()
        except Exception as e:
            logger.warning(f"Failed to read current profile from device: {e}")

        if not profile_name:
            self.cache.profile_id = default
            return self.cache.profile_id

        try:
            profile_id = self.db.find_profile_id(profile_name)
        except Exception as e:
            logger.warning(f"Failed to get profile ID for '{profile_name}': {e}")
            profile_id = None

        self.cache.profile_id = profile_id if profile_id is not None else default
        logger.debug(f"Using profile id {self.cache.profile_id} for profile '{profile_name}'")
        return self.cache.profile_id
