"""History classification and pagination for the public read path.

Classification is **position-based**: among all records of a subject, the
earliest by creation time is the ``"creation"`` and every other record is an
``"edit"``. Record content is not consulted. This assumes creations are never
reordered after the fact. Ties on creation time are broken by record id,
which the public contract assigns in order.

Pages are delivered newest first.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from ledger_bridge.records.models import (
    CrossReferenceRecord,
    HistoryEntry,
    HistoryReport,
    Pagination,
)

DEFAULT_PAGE_SIZE = 10


def classify(records: Iterable[CrossReferenceRecord]) -> list[HistoryEntry]:
    """Label one subject's records, returned in ascending creation order."""
    ordered = sorted(records, key=lambda r: (r.created_at, r.record_id))
    return [
        HistoryEntry(record=record, kind="creation" if index == 0 else "edit")
        for index, record in enumerate(ordered)
    ]


def build_history_report(
    records: Iterable[CrossReferenceRecord],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> HistoryReport:
    """Classify and paginate one subject's records.

    Args:
        records: Every record of a single subject, in any order.
        page:    1-based page number.
        limit:   Page size.

    Returns:
        A :class:`HistoryReport` whose ``records`` are sorted newest first.
        A page past the end yields an empty record list with accurate totals.

    Raises:
        ValueError: If ``page`` or ``limit`` is below 1.

    Example::

        # timestamps 100, 300, 200 -> 100 is the creation
        report = build_history_report(records, page=1, limit=2)
        # report.records -> [300 (edit), 200 (edit)], has_next_page=True
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")

    classified = classify(records)
    newest_first = sorted(
        classified,
        key=lambda e: (e.record.created_at, e.record.record_id),
        reverse=True,
    )

    total = len(newest_first)
    start = (page - 1) * limit
    end = start + limit

    return HistoryReport(
        records=newest_first[start:end],
        pagination=Pagination(
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_records=total,
            has_next_page=end < total,
            has_previous_page=page > 1,
        ),
    )
