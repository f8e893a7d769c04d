import logging
from typing import List, Optional

from .clients.pocketbook_db import PocketBookDB
from .errors import CollectionMaintenanceFailure, CollectionNotFound
from .host import CollectionStore, SettingsStore

logger = logging.getLogger(__name__)

COLLECTION_NAME_KEY = "to_read_collection_name"
COLLECTION_ID_KEY = "to_read_collection_id"

class CollectionMaintainer:
    """
    Removes a finished book from the configured "to read" collection, both the
    PocketBook bookshelf and the reader's own collection of the same name.
    """

    def __init__(self, db: PocketBookDB, global_settings: SettingsStore, collections: CollectionStore):
        self.db = db
        self.global_settings = global_settings
        self.collections = collections

    def on_book_completed(self, book_id: int, book_path: Optional[str]):
        collection_name = self.global_settings.read_setting(COLLECTION_NAME_KEY)
        collection_id = self.global_settings.read_setting(COLLECTION_ID_KEY)

        if collection_id is not None and collection_id != "":
            self.remove_from_pocketbook_collection(book_id, collection_id)

        if collection_name and book_path:
            self.remove_from_reader_collection(book_path, collection_name)

    def remove_from_pocketbook_collection(self, book_id: int, collection_id) -> bool:
        try:
            collection_id = int(collection_id)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unusable collection id {collection_id!r}")
            return False

        logger.info(f"Removing book {book_id} from collection ID: {collection_id}")
        try:
            if not self.db.is_in_collection(book_id, collection_id):
                logger.debug("Book not in collection, nothing to remove")
                return False

            with self.db.transaction(CollectionMaintenanceFailure):
                self.db.delete_membership(book_id, collection_id)
        except CollectionMaintenanceFailure as e:
            logger.error(f"Collection removal failed: {e}")
            return False
        except Exception as e:
            logger.error(f"Collection membership check failed: {e}")
            return False

        logger.info("Successfully removed from collection")
        return True

    def remove_from_reader_collection(self, book_path: str, collection_name: str) -> bool:
        try:
            if not self.collections.contains(collection_name, book_path):
                return False
            self.collections.remove(collection_name, book_path)
            self.collections.save()
        except Exception as e:
            logger.warning(f"Failed to update reader collection '{collection_name}': {e}")
            return False

        logger.info(f"Removed book from reader collection '{collection_name}'")
        return True

    # Configuration

    def list_collections(self) -> List[str]:
        try:
            return sorted(self.collections.names())
        except Exception as e:
            logger.warning(f"Reader collections not available: {e}")
            return []

    def lookup_collection_id(self, name: str) -> int:
        """Raises CollectionNotFound when no live bookshelf carries this name."""
        collection_id = self.db.find_collection_id(name)
        if collection_id is None:
            raise CollectionNotFound(f"Collection '{name}' not found")
        return collection_id

    def select_collection(self, name: str) -> Optional[int]:
        collection_id: Optional[int] = None
        try:
            collection_id = self.lookup_collection_id(name)
        except CollectionNotFound as e:
            logger.info(str(e))
        except Exception as e:
            logger.warning(f"Failed to look up collection '{name}': {e}")

        self.global_settings.save_setting(COLLECTION_NAME_KEY, name)
        if collection_id is not None:
            self.global_settings.save_setting(COLLECTION_ID_KEY, collection_id)
            logger.info(f"Collection ID saved: {collection_id}")
        else:
            self.global_settings.del_setting(COLLECTION_ID_KEY)
        self.global_settings.flush()
        return collection_id

    def clear_collection(self):
        self.global_settings.del_setting(COLLECTION_NAME_KEY)
        self.global_settings.del_setting(COLLECTION_ID_KEY)
        self.global_settings.flush()
        logger.info("Collection settings cleared")
