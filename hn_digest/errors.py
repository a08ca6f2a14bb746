"""Domain error types for the digest service."""


class DigestError(Exception):
    """Base class for every error raised by hn_digest."""


class ScheduleError(DigestError, ValueError):
    """Invalid schedule input (timezone or time of day)."""


class InvalidTimezoneError(ScheduleError):
    """Timezone name could not be resolved."""


class InvalidTimeFormatError(ScheduleError):
    """Time of day is not strict HH:MM."""


class TimeOutOfRangeError(ScheduleError):
    """Hour or minute outside 00-23 / 00-59."""


class SchedulerStoppedError(DigestError):
    """The scheduler was stopped and cannot be restarted."""


class InvalidSettingError(DigestError, ValueError):
    """A settings value was rejected by validation."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class SettingsPersistenceError(DigestError):
    """Settings write-through to durable storage failed."""


class PreferenceUpdateError(DigestError):
    """A like or decay mutation could not be applied.

    Attributes:
        operation: "like" or "decay".
        rolled_back: tags restored to their prior weight.
        unrestored: tags whose restore also failed (state may be partial).
    """

    def __init__(self, operation: str, message: str, rolled_back=(), unrestored=()) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.rolled_back = list(rolled_back)
        self.unrestored = list(unrestored)


class ArticleNotFoundError(DigestError, LookupError):
    """No stored article matches the feedback reference."""


class SummarizationError(DigestError):
    """The summarizer returned nothing usable for an article."""


class DeliveryError(DigestError):
    """A digest message could not be delivered."""
