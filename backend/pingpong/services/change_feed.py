"""
Change feed for match rows.

In-process publish/subscribe: stores publish one ChangeEvent per committed row
change; any number of subscribers receive it. Delivery is at-least-once and
unordered from a subscriber's point of view, so consumers (MatchSnapshot) must
tolerate duplicates and replays.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional

logger = logging.getLogger(__name__)

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"

EventType = Literal["INSERT", "UPDATE", "DELETE"]

Subscriber = Callable[["ChangeEvent"], None]


@dataclass(frozen=True)
class ChangeEvent:
    event_type: str
    table: str
    row: Dict[str, Any] = field(default_factory=dict)

    @property
    def row_id(self) -> Optional[int]:
        return self.row.get("id")


class ChangeFeed:
    """Fan-out of ChangeEvents to subscribers. A failing subscriber never affects the writer."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver to every subscriber. Returns the number of successful deliveries."""
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for callback in subscribers:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Change feed subscriber failed on %s %s id=%s",
                    event.event_type,
                    event.table,
                    event.row_id,
                )
        return delivered


class MatchSnapshot:
    """
    Id-keyed view of the match table kept current from change events.

    INSERT and UPDATE merge the pushed row over what is held (a replayed or
    duplicated event re-applies the same values); DELETE drops the row.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, table: str = "match") -> None:
        self.table = table
        self._rows: Dict[int, Dict[str, Any]] = {}
        for row in rows or []:
            self._rows[row["id"]] = dict(row)

    def apply(self, event: ChangeEvent) -> None:
        if event.table != self.table or event.row_id is None:
            return
        if event.event_type == EVENT_DELETE:
            self._rows.pop(event.row_id, None)
        elif event.event_type in (EVENT_INSERT, EVENT_UPDATE):
            merged = dict(self._rows.get(event.row_id, {}))
            merged.update(event.row)
            self._rows[event.row_id] = merged
        else:
            logger.warning("Ignoring unknown change event type %r", event.event_type)

    def rows(self) -> List[Dict[str, Any]]:
        """Rows ordered by round then match number (id as fallback)."""
        return sorted(
            (dict(r) for r in self._rows.values()),
            key=lambda r: (r.get("round_index", 0), r.get("match_number", 0), r["id"]),
        )

    def get(self, match_id: int) -> Optional[Dict[str, Any]]:
        row = self._rows.get(match_id)
        return dict(row) if row is not None else None

    def __len__(self) -> int:
        return len(self._rows)
