import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from activity import ActivityLog
from catalog import name_lookup, rate_lookup
from errors import ValidationFailed
from repository import OwnerScope
from schemas import CustomerIn, CustomerRecord, OrderIn, OrderRecord

logger = logging.getLogger(__name__)

PLACEHOLDER = "N/A"


# ----- Customers -----

def _customer_fields(payload: CustomerIn) -> Dict[str, str]:
    name = payload.name.strip()
    if not name:
        raise ValidationFailed("Please fill in the customer's name")
    return {"name": name, "address": payload.address.strip(), "phone": payload.phone.strip()}


def list_customers(scope: OwnerScope, search: Optional[str] = None) -> List[CustomerRecord]:
    records = [CustomerRecord.from_document(d) for d in scope.customers.find(sort=[("name", 1)])]
    if search:
        needle = search.strip().lower()
        records = [c for c in records if needle in c.name.lower() or needle in c.phone]
    return records


def get_customer(scope: OwnerScope, customer_id: str) -> CustomerRecord:
    return CustomerRecord.from_document(scope.customers.get(customer_id))


def customer_names(scope: OwnerScope, customer_ids) -> Dict[str, str]:
    docs = scope.customers.get_many(customer_ids)
    return {k: CustomerRecord.from_document(d).name for k, d in docs.items()}


def create_customer(scope: OwnerScope, payload: CustomerIn, activity: ActivityLog) -> CustomerRecord:
    data = _customer_fields(payload)
    new_id = scope.customers.insert(data)
    logger.info("Customer %s created", new_id)
    activity.record("customer_created", new_id, {"name": data["name"]})
    return get_customer(scope, new_id)


def update_customer(scope: OwnerScope, customer_id: str, payload: CustomerIn, activity: ActivityLog) -> CustomerRecord:
    data = _customer_fields(payload)
    scope.customers.update(customer_id, data)
    activity.record("customer_updated", customer_id, {"name": data["name"]})
    return get_customer(scope, customer_id)


def delete_customer(scope: OwnerScope, customer_id: str, activity: ActivityLog) -> None:
    # Orders and bills keep their customer_id and render "N/A" afterwards.
    scope.customers.delete(customer_id)
    logger.info("Customer %s deleted", customer_id)
    activity.record("customer_deleted", customer_id)


# ----- Orders -----

def _order_fields(scope: OwnerScope, payload: OrderIn) -> Dict[str, Any]:
    if not payload.customer_id or not payload.items:
        raise ValidationFailed("Please select a customer and add at least one item")
    if any(not item.cloth_type_id or item.quantity < 1 for item in payload.items):
        raise ValidationFailed("Please fill in all item details")
    scope.customers.get(payload.customer_id)

    missing_rates = [i.cloth_type_id for i in payload.items if i.rate is None]
    rates = rate_lookup(scope, missing_rates) if missing_rates else {}
    if any(t not in rates for t in missing_rates):
        raise ValidationFailed("Please choose a cloth type from the price list")

    items = []
    for item in payload.items:
        rate = item.rate if item.rate is not None else rates[item.cloth_type_id]
        items.append({
            "cloth_type_id": item.cloth_type_id,
            "quantity": item.quantity,
            "rate": float(rate),
            "line_total": item.quantity * float(rate),
        })
    return {
        "customer_id": payload.customer_id,
        "items": items,
        "total": sum(i["line_total"] for i in items),
        "status": payload.status,
        "last_modified": datetime.utcnow(),
    }


def list_orders(scope: OwnerScope, search: Optional[str] = None, customer_id: Optional[str] = None) -> List[Dict[str, Any]]:
    filters = {"customer_id": customer_id} if customer_id else None
    records = [OrderRecord.from_document(d) for d in scope.orders.find(filters, sort=[("last_modified", -1)])]
    names = customer_names(scope, {r.customer_id for r in records if r.customer_id})
    rows = [
        dict(r.model_dump(), customer_name=names.get(r.customer_id, PLACEHOLDER))
        for r in records
    ]
    if search:
        needle = search.strip().lower()
        rows = [r for r in rows if needle in r["customer_name"].lower() or needle in r["id"].lower()]
    return rows


def get_order(scope: OwnerScope, order_id: str) -> OrderRecord:
    return OrderRecord.from_document(scope.orders.get(order_id))


def order_details(scope: OwnerScope, order_id: str) -> Dict[str, Any]:
    order = get_order(scope, order_id)
    customer = scope.customers.get_or_none(order.customer_id)
    names = name_lookup(scope, {i.cloth_type_id for i in order.items if i.cloth_type_id})
    detail = order.model_dump()
    detail["customer"] = CustomerRecord.from_document(customer).model_dump() if customer else None
    for item in detail["items"]:
        item["cloth_type_name"] = names.get(item["cloth_type_id"], PLACEHOLDER)
    return detail


def create_order(scope: OwnerScope, payload: OrderIn, activity: ActivityLog) -> OrderRecord:
    data = _order_fields(scope, payload)
    new_id = scope.orders.insert(data)
    logger.info("Order %s created for customer %s, total %.2f", new_id, data["customer_id"], data["total"])
    activity.record("order_created", new_id, {"total": data["total"]})
    return get_order(scope, new_id)


def update_order(scope: OwnerScope, order_id: str, payload: OrderIn, activity: ActivityLog) -> OrderRecord:
    data = _order_fields(scope, payload)
    scope.orders.update(order_id, data)
    logger.info("Order %s updated, total %.2f", order_id, data["total"])
    activity.record("order_updated", order_id, {"total": data["total"]})
    return get_order(scope, order_id)


def delete_order(scope: OwnerScope, order_id: str, activity: ActivityLog) -> None:
    scope.orders.delete(order_id)
    logger.info("Order %s deleted", order_id)
    activity.record("order_deleted", order_id)
