class PopServerError(Exception):
    """Base class for failures raised by the proof-of-play core."""


class DatabaseInitError(PopServerError):
    """The storage schema could not be created."""


class StorageUnavailableError(PopServerError):
    """No pooled connection could be obtained from the storage engine."""


class WriteFailedError(PopServerError):
    """An insert or commit failed inside a submission transaction."""

    def __init__(self, message: str, event_index: int | None = None):
        super().__init__(message)
        self.event_index = event_index
