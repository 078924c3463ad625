"""Records package - the public cross-reference store and its read path.

Public surface
--------------
- :class:`CrossReferenceStore` - reserve, patch, read and page records.
- :func:`build_history_report` - classify and paginate one subject's records.
- Record types from :mod:`ledger_bridge.records.models`.
"""

from ledger_bridge.records.history import build_history_report, classify
from ledger_bridge.records.models import (
    CrossReferenceRecord,
    HistoryEntry,
    HistoryReport,
    Pagination,
    PatchReceipt,
    Reservation,
)
from ledger_bridge.records.store import (
    DEFAULT_PLACEHOLDER,
    RECORD_RESERVED_EVENT,
    CrossReferenceStore,
)

__all__ = [
    "DEFAULT_PLACEHOLDER",
    "RECORD_RESERVED_EVENT",
    "CrossReferenceRecord",
    "CrossReferenceStore",
    "HistoryEntry",
    "HistoryReport",
    "Pagination",
    "PatchReceipt",
    "Reservation",
    "build_history_report",
    "classify",
]
