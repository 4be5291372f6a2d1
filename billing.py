"""
Bill generation and the bill lifecycle.

A bill is a snapshot: generate_bill sums the customer's order totals once and
the stored total is never recomputed, even if those orders change later.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple

from activity import ActivityLog
from config import BILLS_PAGE_SIZE
from errors import RecordNotFound, ValidationFailed
from orders import PLACEHOLDER, customer_names
from repository import OwnerScope, to_object_id
from schemas import BILL_STATUSES, BillRecord, BillStatus, OrderRecord

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)

NO_ORDERS_FOUND = "No orders were found for the selected customer and date range."


@dataclass
class OrderAggregate:
    orders: List[OrderRecord] = field(default_factory=list)
    total: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.orders

    @property
    def order_ids(self) -> List[str]:
        return [o.id for o in self.orders]


def day_bounds(start_date: date, end_date: date) -> Tuple[datetime, datetime]:
    """[start 00:00:00.000, end 23:59:59.999], both ends inclusive."""
    if start_date > end_date:
        raise ValidationFailed("Start date must not be after end date")
    return datetime.combine(start_date, time.min), datetime.combine(end_date, END_OF_DAY)


def aggregate_orders(scope: OwnerScope, customer_id: str, start_date: date, end_date: date) -> OrderAggregate:
    start, end = day_bounds(start_date, end_date)
    docs = scope.orders.find(
        {"customer_id": customer_id, "created_at": {"$gte": start, "$lte": end}},
        sort=[("created_at", 1)],
    )
    orders = [OrderRecord.from_document(d) for d in docs]
    return OrderAggregate(orders=orders, total=sum(o.total for o in orders))


def default_bill_range(scope: OwnerScope, today: Optional[date] = None) -> Tuple[date, date]:
    """Earliest and latest order dates, used to prefill the generation form."""
    today = today or datetime.utcnow().date()
    first = scope.orders.find(sort=[("created_at", 1)], limit=1)
    last = scope.orders.find(sort=[("created_at", -1)], limit=1)
    if not first:
        return today, today
    return first[0]["created_at"].date(), last[0]["created_at"].date()


def generate_bill(scope: OwnerScope, customer_id: Optional[str], start_date: date, end_date: date, activity: ActivityLog) -> Optional[BillRecord]:
    """Persist a Pending bill for the customer's orders in range.

    Returns None when no order matched; nothing is written in that case.
    """
    if not customer_id:
        raise ValidationFailed("Please select a customer")
    scope.customers.get(customer_id)

    aggregate = aggregate_orders(scope, customer_id, start_date, end_date)
    if aggregate.is_empty:
        logger.info("No orders for customer %s between %s and %s", customer_id, start_date, end_date)
        return None

    start, end = day_bounds(start_date, end_date)
    new_id = scope.bills.insert({
        "customer_id": customer_id,
        "order_ids": aggregate.order_ids,
        "start_date": start,
        "end_date": end,
        "total": aggregate.total,
        "status": "Pending",
    })
    logger.info("Bill %s generated for customer %s: %d orders, total %.2f", new_id, customer_id, len(aggregate.orders), aggregate.total)
    activity.record("bill_created", new_id, {"total": aggregate.total})
    return get_bill(scope, new_id)


# ----- Bill store -----

def get_bill(scope: OwnerScope, bill_id: str) -> BillRecord:
    return BillRecord.from_document(scope.bills.get(bill_id))


def next_status(current: str) -> BillStatus:
    """Pending -> Paid -> Unpaid -> Pending."""
    if current not in BILL_STATUSES:
        return BILL_STATUSES[0]
    return BILL_STATUSES[(BILL_STATUSES.index(current) + 1) % len(BILL_STATUSES)]


def set_bill_status(scope: OwnerScope, bill_id: str, status: BillStatus, activity: ActivityLog) -> BillRecord:
    if status not in BILL_STATUSES:
        raise ValidationFailed(f"Unknown bill status: {status}")
    scope.bills.update(bill_id, {"status": status})
    bill = get_bill(scope, bill_id)
    logger.info("Bill %s marked %s", bill_id, status)
    activity.record("bill_updated", bill_id, {"status": status, "total": bill.total})
    return bill


def cycle_bill_status(scope: OwnerScope, bill_id: str, activity: ActivityLog) -> BillRecord:
    bill = get_bill(scope, bill_id)
    return set_bill_status(scope, bill_id, next_status(bill.status), activity)


def delete_bill(scope: OwnerScope, bill_id: str, activity: ActivityLog) -> None:
    scope.bills.delete(bill_id)
    logger.info("Bill %s deleted", bill_id)
    activity.record("bill_deleted", bill_id)


def list_bills(scope: OwnerScope, customer_id: Optional[str] = None, after: Optional[str] = None, page_size: int = BILLS_PAGE_SIZE) -> Dict[str, Any]:
    """One page of bills, newest first.

    `after` is the id of the last bill of the previous page; the page holds
    bills strictly older than it. There is no backward cursor.
    """
    filters: Dict[str, Any] = {}
    if customer_id:
        filters["customer_id"] = customer_id
    if after:
        cursor_doc = scope.bills.get_or_none(after)
        if cursor_doc is None:
            raise RecordNotFound("Bill", after)
        filters["$or"] = [
            {"created_at": {"$lt": cursor_doc["created_at"]}},
            {"created_at": cursor_doc["created_at"], "_id": {"$lt": to_object_id(after)}},
        ]

    docs = scope.bills.find(filters, sort=[("created_at", -1), ("_id", -1)], limit=page_size + 1)
    has_more = len(docs) > page_size
    bills = [BillRecord.from_document(d) for d in docs[:page_size]]
    names = customer_names(scope, {b.customer_id for b in bills if b.customer_id})
    items = [dict(b.model_dump(), customer_name=names.get(b.customer_id, PLACEHOLDER)) for b in bills]
    return {
        "items": items,
        "next_cursor": items[-1]["id"] if has_more else None,
        "has_more": has_more,
    }
