"""
History Service.

Builds the history page from one snapshot of the user's records:
annotated records for the timeline (grouped by month), the chronological
map path, and the view's current highlight.
"""

import calendar
import logging
from typing import Dict, List, Sequence

from triptrace.app.core.exceptions import ResourceNotFoundError
from triptrace.app.schemas.history import AnnotatedRecord, HistoryView, TimelineGroup
from triptrace.app.services.batch_geocoder import BatchGeocoder
from triptrace.app.services.path_engine import (
    build_path,
    compute_bounds,
    compute_center,
    order_chronologically,
)
from triptrace.app.services.selection import SelectionRegistry
from triptrace.app.services.storage_client import RecordStore

logger = logging.getLogger(__name__)


def group_by_month(annotated: Sequence[AnnotatedRecord]) -> List[TimelineGroup]:
    """
    Group records by (year, month) of travel.

    Groups are ordered newest first; records keep their input order inside a
    group.
    """
    groups: Dict[str, TimelineGroup] = {}
    for item in annotated:
        travel_date = item.record.travel_date
        key = f"{travel_date.year}-{travel_date.month:02d}"
        group = groups.get(key)
        if group is None:
            group = TimelineGroup(
                key=key,
                label=f"{calendar.month_name[travel_date.month]} {travel_date.year}",
                year=travel_date.year,
                month=travel_date.month,
                records=[],
            )
            groups[key] = group
        group.records.append(item)

    return [groups[key] for key in sorted(groups, reverse=True)]


class HistoryService:

    def __init__(self, store: RecordStore, geocoder: BatchGeocoder, selections: SelectionRegistry):
        self.store = store
        self.geocoder = geocoder
        self.selections = selections

    async def load_history(self, user_id: str, view_id: str) -> HistoryView:
        """
        Assemble the history view for `user_id`.

        Raises:
            StorageError: listing records failed (propagated unchanged)
        """
        records = await self.store.list_records(user_id)
        annotated = await self.geocoder.annotate(records)

        by_record = {id(r): a for r, a in zip(records, annotated)}
        mapped = [by_record[id(r)] for r in order_chronologically(records)]

        coordinator = self.selections.find(user_id, view_id)
        highlighted = coordinator.resolve(r.id for r in records) if coordinator else None

        logger.info(
            "History for user %s: %d records, %d mapped", user_id, len(records), len(mapped)
        )
        return HistoryView(
            records=annotated,
            timeline=group_by_month(annotated),
            mapped=mapped,
            path=build_path(records),
            center=compute_center(records),
            bounds=compute_bounds(records),
            highlighted_record_id=highlighted,
            total_count=len(records),
            mapped_count=len(mapped),
        )

    async def delete_record(self, user_id: str, record_id: str) -> None:
        """Delete one of the user's records and drop highlights pointing at it."""
        records = await self.store.list_records(user_id)
        if not any(r.id == record_id for r in records):
            raise ResourceNotFoundError("Travel record", record_id)

        await self.store.delete_record(record_id)
        for coordinator in self.selections.for_user(user_id):
            coordinator.forget(record_id)
