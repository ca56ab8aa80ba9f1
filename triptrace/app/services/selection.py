"""
Selection Coordinator.

One authoritative "currently highlighted record" per history view. Views
never call each other: they report clicks here and react to the events the
coordinator publishes to its subscribers.
"""

import logging
from collections import OrderedDict
from typing import Callable, Iterable, List, Optional, Tuple

from triptrace.app.core.config import settings
from triptrace.app.schemas.selection import SelectionEvent, SelectionSource, SignalType

logger = logging.getLogger(__name__)

Listener = Callable[[SelectionEvent], None]


class SelectionCoordinator:
    """
    Shared highlight state for the map and timeline views.

    Transitions:
        select_from_timeline(id) -> highlighted = id, map opens the popup
        select_from_map(id)      -> highlighted = id, timeline scrolls to item
        clear()                  -> highlighted = None
    Rapid selections are last-write-wins.
    """

    def __init__(self):
        self._highlighted: Optional[str] = None
        self._listeners: List[Listener] = []

    @property
    def highlighted(self) -> Optional[str]:
        return self._highlighted

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def select_from_timeline(self, record_id: str) -> SelectionEvent:
        self._highlighted = record_id
        return self._publish(SelectionEvent(
            signal=SignalType.OPEN_POPUP,
            record_id=record_id,
            source=SelectionSource.TIMELINE,
        ))

    def select_from_map(self, record_id: str) -> SelectionEvent:
        self._highlighted = record_id
        return self._publish(SelectionEvent(
            signal=SignalType.SCROLL_INTO_VIEW,
            record_id=record_id,
            source=SelectionSource.MAP,
            scroll_block="center",
            scroll_behavior="smooth",
        ))

    def select(self, record_id: str, source: SelectionSource) -> SelectionEvent:
        if source == SelectionSource.MAP:
            return self.select_from_map(record_id)
        return self.select_from_timeline(record_id)

    def clear(self) -> SelectionEvent:
        self._highlighted = None
        return self._publish(SelectionEvent(signal=SignalType.CLEARED))

    def resolve(self, record_ids: Iterable[str]) -> Optional[str]:
        """Highlighted id if it is part of the current record set, else None."""
        if self._highlighted is None:
            return None
        return self._highlighted if self._highlighted in set(record_ids) else None

    def forget(self, record_id: str) -> bool:
        """Clear the highlight if it points at `record_id` (e.g. record deleted)."""
        if self._highlighted is not None and self._highlighted == record_id:
            self.clear()
            return True
        return False

    def _publish(self, event: SelectionEvent) -> SelectionEvent:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # One broken view must not starve the other
                logger.exception("Selection listener failed for %s", event.signal.value)
        return event


class SelectionRegistry:
    """
    Keeps one SelectionCoordinator per (user, history view).

    Only `get` creates coordinators; reads go through `find`. The registry is
    bounded: once `max_views` coordinators exist, the least recently used one
    is evicted, which is the same as that view having no highlight.
    """

    def __init__(self, max_views: int = settings.selection_max_views):
        self.max_views = max_views
        self._coordinators: "OrderedDict[Tuple[str, str], SelectionCoordinator]" = OrderedDict()

    def get(self, user_id: str, view_id: str) -> SelectionCoordinator:
        key = (user_id, view_id)
        coordinator = self._coordinators.get(key)
        if coordinator is None:
            coordinator = SelectionCoordinator()
            self._coordinators[key] = coordinator
            while len(self._coordinators) > self.max_views:
                (uid, vid), _ = self._coordinators.popitem(last=False)
                logger.debug("Evicted selection state of view %s for user %s", vid, uid)
        else:
            self._coordinators.move_to_end(key)
        return coordinator

    def find(self, user_id: str, view_id: str) -> Optional[SelectionCoordinator]:
        return self._coordinators.get((user_id, view_id))

    def drop(self, user_id: str, view_id: str) -> None:
        self._coordinators.pop((user_id, view_id), None)

    def for_user(self, user_id: str) -> List[SelectionCoordinator]:
        return [c for (uid, _), c in self._coordinators.items() if uid == user_id]

    def __len__(self) -> int:
        return len(self._coordinators)
