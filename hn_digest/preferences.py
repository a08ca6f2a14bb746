from typing import Dict, Iterable, List, Optional, Tuple
import threading

from .errors import PreferenceUpdateError
from .logging_setup import get_logger
from .models import TagWeight
from .protocols import TagWeightStore

logger = get_logger("hn_digest.preferences")


class PreferenceModel:
    """
    Learns tag weights from likes and lets them fade between digests.

    Every mutation goes through one lock, so a like arriving from the feedback
    route and the decay step of a scheduled run never interleave. A mutation
    that fails half-way restores the tags it already wrote before raising.
    """

    def __init__(
        self,
        store: TagWeightStore,
        boost: float = 0.2,
        decay_rate: float = 0.02,
        min_weight: float = 0.1,
    ):
        self.store = store
        self._lock = threading.Lock()
        self.configure(boost=boost, decay_rate=decay_rate, min_weight=min_weight)

    def configure(
        self,
        boost: Optional[float] = None,
        decay_rate: Optional[float] = None,
        min_weight: Optional[float] = None,
    ) -> None:
        with self._lock:
            if boost is not None:
                self.boost = float(boost)
            if decay_rate is not None:
                if not 0.0 <= decay_rate <= 1.0:
                    raise ValueError(f"decay_rate must be within [0, 1], got {decay_rate}")
                self.decay_rate = float(decay_rate)
            if min_weight is not None:
                self.min_weight = float(min_weight)

    def weights(self) -> Dict[str, float]:
        return {tag: tw.weight for tag, tw in self.store.get_all().items()}

    def top_tags(self, limit: int = 10) -> List[TagWeight]:
        rows = sorted(self.store.get_all().values(), key=lambda tw: (-tw.weight, tw.tag))
        return rows[:limit]

    def apply_like(self, tags: Iterable[str]) -> Dict[str, float]:
        """Add ``boost`` to every tag of a liked article. Returns the new weights."""
        unique = [t for t in dict.fromkeys(tags or ()) if t]
        with self._lock:
            prior: List[Tuple[str, Optional[TagWeight]]] = []
            updates: Dict[str, Tuple[float, int]] = {}
            try:
                for tag in unique:
                    current = self.store.get(tag)
                    prior.append((tag, current))
                    weight = current.weight if current else 0.0
                    count = current.count if current else 0
                    updates[tag] = (weight + self.boost, count + 1)
            except Exception as e:
                logger.exception("LIKE_READ_FAILED", extra={"tags": unique, "error": type(e).__name__})
                raise PreferenceUpdateError("like", f"reading tag weights failed: {e}") from e

            self._write_all("like", updates, dict(prior))

        logger.info("LIKE_APPLIED", extra={"tags": unique, "boost": self.boost})
        return {tag: w for tag, (w, _) in updates.items()}

    def apply_decay(self) -> int:
        """Fade every stored weight toward ``min_weight``. Returns the number of tags touched."""
        with self._lock:
            try:
                current = self.store.get_all()
            except Exception as e:
                logger.exception("DECAY_READ_FAILED", extra={"error": type(e).__name__})
                raise PreferenceUpdateError("decay", f"reading tag weights failed: {e}") from e

            factor = 1.0 - self.decay_rate
            updates = {
                tag: (max(self.min_weight, tw.weight * factor), tw.count)
                for tag, tw in current.items()
            }
            self._write_all("decay", updates, current)

        logger.info(
            "DECAY_APPLIED",
            extra={"tags": len(updates), "decay_rate": self.decay_rate, "min_weight": self.min_weight},
        )
        return len(updates)

    def _write_all(self, operation, updates, prior) -> None:
        # caller holds self._lock
        written: List[str] = []
        for tag, (weight, count) in updates.items():
            try:
                self.store.set(tag, weight, count)
            except Exception as e:
                restored, unrestored = self._restore(written, prior)
                logger.exception(
                    "PREFERENCE_WRITE_FAILED",
                    extra={"operation": operation, "tag": tag, "restored": restored,
                           "unrestored": unrestored, "error": type(e).__name__},
                )
                raise PreferenceUpdateError(
                    operation, f"writing tag {tag!r} failed: {e}", restored, unrestored
                ) from e
            written.append(tag)

    def _restore(self, written, prior):
        restored, unrestored = [], []
        for tag in reversed(written):
            before = prior.get(tag)
            try:
                if before is None:
                    self.store.delete(tag)
                else:
                    self.store.set(tag, before.weight, before.count)
                restored.append(tag)
            except Exception:
                unrestored.append(tag)
        return restored, unrestored
