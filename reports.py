import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from repository import OwnerScope
from schemas import ActivityRecord, BillRecord

logger = logging.getLogger(__name__)

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def recent_activity(scope: OwnerScope, limit: int = 5) -> List[ActivityRecord]:
    records = []
    for doc in scope.activities.find(sort=[("created_at", -1)], limit=limit):
        try:
            records.append(ActivityRecord.from_document(doc))
        except ValidationError as e:
            logger.warning("Skipping malformed activity %s: %s", doc.get("_id"), e)
    return records


def revenue_chart(bills: List[BillRecord], time_range: str, now: datetime) -> Dict[str, Any]:
    dated = [b for b in bills if b.created_at]
    if time_range == "Week":
        data = [0.0] * 7
        for b in dated:
            if now - b.created_at < timedelta(days=7):
                # isoweekday: Mon=1 .. Sun=7
                data[b.created_at.isoweekday() % 7] += b.total
        return {"labels": list(WEEKDAYS), "data": data}
    if time_range == "Month":
        data = [0.0] * now.month
        for b in dated:
            if b.created_at.year == now.year and b.created_at.month <= now.month:
                data[b.created_at.month - 1] += b.total
        return {"labels": MONTHS[:now.month], "data": data}
    if time_range == "Year":
        years = [now.year - 2, now.year - 1, now.year]
        totals = {y: 0.0 for y in years}
        for b in dated:
            if b.created_at.year in totals:
                totals[b.created_at.year] += b.total
        return {"labels": [str(y) for y in years], "data": [totals[y] for y in years]}
    raise ValueError(f"Unknown time range: {time_range}")


def summarize(scope: OwnerScope, time_range: str = "Month", now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    bills = [BillRecord.from_document(d) for d in scope.bills.find()]
    paid = [b for b in bills if b.status == "Paid"]
    return {
        "total_customers": scope.customers.count(),
        "total_paid": sum(b.total for b in paid),
        "total_pending": sum(b.total for b in bills if b.status in ("Pending", "Unpaid")),
        "chart": revenue_chart(paid, time_range, now),
        "recent_activity": [a.model_dump() for a in recent_activity(scope)],
    }
