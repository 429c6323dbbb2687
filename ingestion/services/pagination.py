"""Pagination metadata for list queries."""

from __future__ import annotations

from ingestion.models.domain import Metadata


def paginate(total: int, page: int, size: int) -> Metadata:
    """Build the metadata envelope for ``total`` rows viewed ``size`` at a time.

    Zero rows yields the all-zero ``Metadata`` regardless of page/size.
    """
    if total == 0:
        return Metadata()
    return Metadata(
        current_page=page,
        page_size=size,
        first_page=1,
        last_page=-(-total // size),
        total_records=total,
    )
