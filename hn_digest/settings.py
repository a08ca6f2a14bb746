from contextlib import contextmanager
from typing import Callable, Dict, Mapping, Optional, Tuple
import math
import threading

from .errors import InvalidSettingError, ScheduleError, SettingsPersistenceError
from .logging_setup import get_logger
from .protocols import SettingsStore
from .scheduler import parse_time_of_day, resolve_timezone

logger = get_logger("hn_digest.settings")


class _RWLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _check_time(value: str) -> None:
    try:
        parse_time_of_day(value)
    except ScheduleError as e:
        raise InvalidSettingError("digest_time", str(e)) from e


def _check_timezone(value: str) -> None:
    try:
        resolve_timezone(value)
    except ScheduleError as e:
        raise InvalidSettingError("timezone", str(e)) from e


def _float_in(key: str, low: Optional[float] = None, high: Optional[float] = None):
    def check(value: str) -> None:
        try:
            f = float(value)
        except (TypeError, ValueError):
            raise InvalidSettingError(key, f"{value!r} is not a number") from None
        if math.isnan(f) or math.isinf(f):
            raise InvalidSettingError(key, f"{value!r} is not a finite number")
        if (low is not None and f < low) or (high is not None and f > high):
            raise InvalidSettingError(key, f"{value!r} must be within [{low}, {high}]")
    return check


def _int_in(key: str, low: int, high: int):
    def check(value: str) -> None:
        try:
            n = int(value)
        except (TypeError, ValueError):
            raise InvalidSettingError(key, f"{value!r} is not an integer") from None
        if not low <= n <= high:
            raise InvalidSettingError(key, f"{value!r} must be between {low} and {high}")
    return check


VALIDATORS: Dict[str, Callable[[str], None]] = {
    "digest_time": _check_time,
    "timezone": _check_timezone,
    "tag_decay_rate": _float_in("tag_decay_rate", 0.0, 1.0),
    "min_tag_weight": _float_in("min_tag_weight"),
    "tag_boost_on_like": _float_in("tag_boost_on_like"),
    "article_count": _int_in("article_count", 1, 100),
}


class SettingsManager:
    """
    In-memory view of the settings table.

    ``load`` seeds missing keys with their defaults; afterwards the stored
    value wins until ``set`` overwrites it. Reads never touch storage.
    """

    def __init__(self, store: SettingsStore, validators: Mapping[str, Callable[[str], None]] = VALIDATORS):
        self.store = store
        self.validators = dict(validators)
        self._cache: Dict[str, str] = {}
        self._defaults: Dict[str, str] = {}
        self._lock = _RWLock()

    def load(self, defaults: Mapping[str, str]) -> None:
        with self._lock.write():
            for key, default in defaults.items():
                default = str(default)
                self._defaults[key] = default
                try:
                    value, found = self.store.get(key)
                    if not found:
                        self.store.set(key, default)
                        value = default
                        logger.info("SETTING_DEFAULTED", extra={"key": key, "value": default})
                except Exception as e:
                    logger.exception("SETTINGS_LOAD_FAILED", extra={"key": key, "error": type(e).__name__})
                    raise SettingsPersistenceError(f"loading {key!r} failed: {e}") from e
                self._cache[key] = value

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        with self._lock.read():
            if key in self._cache:
                return self._cache[key], True
            return None, False

    def get_str(self, key: str, fallback: Optional[str] = None) -> Optional[str]:
        value, found = self.get(key)
        return value if found else fallback

    def get_int(self, key: str, fallback: int = 0) -> int:
        value, found = self.get(key)
        try:
            return int(value) if found else fallback
        except ValueError:
            logger.warning("SETTING_NOT_INT", extra={"key": key, "value": value})
            return fallback

    def get_float(self, key: str, fallback: float = 0.0) -> float:
        value, found = self.get(key)
        try:
            return float(value) if found else fallback
        except ValueError:
            logger.warning("SETTING_NOT_FLOAT", extra={"key": key, "value": value})
            return fallback

    def default(self, key: str) -> Optional[str]:
        return self._defaults.get(key)

    def snapshot(self) -> Dict[str, str]:
        with self._lock.read():
            return dict(self._cache)

    def set(self, key: str, value: str) -> None:
        value = str(value).strip()
        check = self.validators.get(key)
        if check is None:
            raise InvalidSettingError(key, "unknown setting")
        check(value)
        with self._lock.write():
            try:
                self.store.set(key, value)
            except Exception as e:
                logger.exception("SETTING_WRITE_FAILED", extra={"key": key, "error": type(e).__name__})
                raise SettingsPersistenceError(f"writing {key!r} failed: {e}") from e
            self._cache[key] = value
        logger.info("SETTING_UPDATED", extra={"key": key, "value": value})
