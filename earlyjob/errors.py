class IngestionError(Exception):
    """Base class for ingestion pipeline errors"""


class FetchError(IngestionError):
    """Network, HTTP or parse failure against a single upstream provider"""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class NoCapacityError(IngestionError):
    """No provider is eligible for selection"""


class PersistenceError(IngestionError):
    """Store write or read failure for a single record"""


class DuplicateRecordError(PersistenceError):
    """A uniqueness constraint rejected the record"""


class FatalError(IngestionError):
    """Unrecoverable failure, e.g. missing or invalid configuration"""
