"""
Best-effort audit trail.

Services queue activities with ActivityLog.record(); the queue is written by
flush(), which main.py schedules as a background task once the response is
sent. A failed write is logged and dropped; it is never retried and never
reaches the caller.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict

from pymongo.errors import PyMongoError

from repository import OwnerScopedRepository

logger = logging.getLogger(__name__)


@dataclass
class ActivityEvent:
    type: str
    doc_id: str
    details: Dict[str, Any] = field(default_factory=dict)


class ActivityLog:
    def __init__(self, activities: OwnerScopedRepository):
        self.activities = activities
        self.pending: Deque[ActivityEvent] = deque()

    def record(self, type: str, doc_id: str, details: Dict[str, Any] = None) -> None:
        self.pending.append(ActivityEvent(type=type, doc_id=str(doc_id), details=dict(details or {})))

    def flush(self) -> int:
        written = 0
        while self.pending:
            event = self.pending.popleft()
            try:
                self.activities.insert({"type": event.type, "doc_id": event.doc_id, "details": event.details})
                written += 1
            except PyMongoError as e:
                logger.warning("Dropping %s activity for %s: %s", event.type, event.doc_id, e)
        return written
