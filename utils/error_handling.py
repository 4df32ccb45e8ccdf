import logging
import threading
from collections import Counter, defaultdict, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


class VariantEngineError(Exception):
    """Base exception for all variant engine errors"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class CatalogError(VariantEngineError):
    """Catalog service could not deliver a usable product payload"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        super().__init__(message, context)
        self.status_code = status_code


class RefreshFailed(VariantEngineError):
    """A variant refresh failed; selection and store keep their last-good values"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, variant_id: Optional[str] = None):
        super().__init__(message, context)
        self.variant_id = variant_id


class MalformedVariant(VariantEngineError):
    """Variant record with unusable attribute data; reported, never raised"""


@dataclass
class ErrorContext:
    """Which product, variant and engine operation an error belongs to"""

    product_slug: Optional[str] = None
    variant_id: Optional[str] = None
    operation: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_ALERT_THRESHOLDS = {
    "RefreshFailed": 5,
    "CatalogError": 10,
    "MalformedVariant": 20,
}


class ErrorReporter:
    """Counts reported engine errors per type and keeps the latest few of each.

    A warning is logged once when a type's count reaches its alert threshold.
    """

    def __init__(self, alert_thresholds: Optional[Dict[str, int]] = None, keep_last: int = 10):
        self.alert_thresholds = alert_thresholds or dict(DEFAULT_ALERT_THRESHOLDS)
        self._counts: Counter = Counter()
        self._latest: Dict[str, Deque[Dict[str, Any]]] = defaultdict(lambda: deque(maxlen=keep_last))
        self._lock = threading.Lock()

    def report_error(self, error: Exception, context: Optional[ErrorContext] = None) -> None:
        kind = type(error).__name__
        entry = {
            "reported_at": datetime.now(),
            "error_type": kind,
            "message": str(error),
            "context": context.to_dict() if context else dict(getattr(error, "context", {})),
        }
        with self._lock:
            self._counts[kind] += 1
            self._latest[kind].append(entry)
            count = self._counts[kind]

        if count == self.alert_thresholds.get(kind):
            logger.warning("%s reported %d times", kind, count)

    def generate_report(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "generated_at": datetime.now().isoformat(),
                "total_errors": sum(self._counts.values()),
                "error_types": dict(self._counts),
                "recent_errors": {kind: list(entries) for kind, entries in self._latest.items()},
            }

    def get_error_trends(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def recent(self, error_type: str) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._latest.get(error_type, ()))

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()
            self._latest.clear()


error_reporter = ErrorReporter()
