class PocketBookSyncError(Exception):
    """Base class for everything the sync engine raises internally."""

class NotFound(PocketBookSyncError):
    """A lookup matched no row. Aborts the current attempt only."""

class FolderNotFound(NotFound):
    pass

class BookNotFound(NotFound):
    pass

class CollectionNotFound(NotFound):
    pass

class TransactionFailure(PocketBookSyncError):
    """begin/execute/commit of the progress upsert failed and was rolled back."""

class CollectionMaintenanceFailure(PocketBookSyncError):
    pass

class CircuitOpen(PocketBookSyncError):
    def __init__(self, errors: int):
        super().__init__(f"{errors} consecutive database errors, external sync disabled")
        self.errors = errors
