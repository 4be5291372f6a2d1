from datetime import date, datetime

import pytest

import billing
from activity import ActivityLog
from errors import RecordNotFound, ValidationFailed


def add_customer(scope, name="Meera"):
    return scope.customers.insert({"name": name, "address": "", "phone": ""})


def add_order(scope, customer_id, total, created_at):
    return scope.orders.insert({
        "customer_id": customer_id,
        "items": [{"cloth_type_id": "x", "quantity": 1, "rate": total, "line_total": total}],
        "total": total,
        "status": "Pending",
        "created_at": created_at,
        "last_modified": created_at,
    })


@pytest.fixture
def activity(scope):
    return ActivityLog(scope.activities)


def test_bill_for_two_orders_in_range(scope, activity):
    customer = add_customer(scope)
    add_order(scope, customer, 100.00, datetime(2024, 1, 5, 10, 30))
    add_order(scope, customer, 250.50, datetime(2024, 1, 20, 18, 0))

    bill = billing.generate_bill(scope, customer, date(2024, 1, 1), date(2024, 1, 31), activity)

    assert bill.total == pytest.approx(350.50)
    assert bill.status == "Pending"
    assert len(bill.order_ids) == 2
    assert bill.start_date == datetime(2024, 1, 1)
    assert [e.type for e in activity.pending] == ["bill_created"]


def test_no_orders_creates_no_bill(scope, activity):
    customer = add_customer(scope)
    add_order(scope, customer, 80.0, datetime(2023, 12, 31, 23, 59))

    assert billing.generate_bill(scope, customer, date(2024, 1, 1), date(2024, 1, 31), activity) is None
    assert scope.bills.count() == 0
    assert not activity.pending


def test_range_is_inclusive_on_both_days(scope):
    customer = add_customer(scope)
    add_order(scope, customer, 1.0, datetime(2024, 1, 1, 0, 0, 0))
    add_order(scope, customer, 2.0, datetime(2024, 1, 31, 23, 59, 59, 999000))
    add_order(scope, customer, 4.0, datetime(2024, 2, 1, 0, 0, 0))
    add_order(scope, customer, 8.0, datetime(2023, 12, 31, 23, 59, 59, 999000))

    aggregate = billing.aggregate_orders(scope, customer, date(2024, 1, 1), date(2024, 1, 31))

    assert aggregate.total == 3.0
    assert len(aggregate.orders) == 2


def test_other_customers_and_owners_are_excluded(scope, other_scope):
    customer = add_customer(scope)
    neighbour = add_customer(scope, "Kiran")
    add_order(scope, customer, 10.0, datetime(2024, 3, 3))
    add_order(scope, neighbour, 20.0, datetime(2024, 3, 3))
    add_order(other_scope, customer, 40.0, datetime(2024, 3, 3))

    aggregate = billing.aggregate_orders(scope, customer, date(2024, 3, 1), date(2024, 3, 31))

    assert aggregate.total == 10.0


def test_empty_aggregate_is_not_an_error(scope):
    aggregate = billing.aggregate_orders(scope, "nobody", date(2024, 1, 1), date(2024, 1, 1))
    assert aggregate.is_empty
    assert aggregate.total == 0


def test_start_after_end_is_rejected(scope):
    with pytest.raises(ValidationFailed):
        billing.aggregate_orders(scope, "c", date(2024, 2, 1), date(2024, 1, 1))


def test_customer_is_required(scope, activity):
    with pytest.raises(ValidationFailed):
        billing.generate_bill(scope, None, date(2024, 1, 1), date(2024, 1, 31), activity)


def test_bill_total_is_a_snapshot(scope, activity):
    customer = add_customer(scope)
    order_id = add_order(scope, customer, 100.0, datetime(2024, 1, 5))
    bill = billing.generate_bill(scope, customer, date(2024, 1, 1), date(2024, 1, 31), activity)

    scope.orders.update(order_id, {"total": 999.0})

    assert billing.get_bill(scope, bill.id).total == 100.0


def test_default_range_spans_first_and_last_order(scope):
    customer = add_customer(scope)
    add_order(scope, customer, 1.0, datetime(2024, 4, 2, 9))
    add_order(scope, customer, 1.0, datetime(2024, 6, 9, 17))

    assert billing.default_bill_range(scope) == (date(2024, 4, 2), date(2024, 6, 9))


def test_default_range_without_orders_is_today(scope):
    assert billing.default_bill_range(scope, today=date(2025, 5, 5)) == (date(2025, 5, 5), date(2025, 5, 5))


@pytest.mark.parametrize("current, following", [
    ("Pending", "Paid"),
    ("Paid", "Unpaid"),
    ("Unpaid", "Pending"),
])
def test_next_status_cycles(current, following):
    assert billing.next_status(current) == following


def test_any_status_can_be_set_directly(scope, activity):
    customer = add_customer(scope)
    add_order(scope, customer, 50.0, datetime(2024, 1, 5))
    bill = billing.generate_bill(scope, customer, date(2024, 1, 1), date(2024, 1, 31), activity)

    assert billing.set_bill_status(scope, bill.id, "Unpaid", activity).status == "Unpaid"
    assert billing.set_bill_status(scope, bill.id, "Pending", activity).status == "Pending"
    assert billing.cycle_bill_status(scope, bill.id, activity).status == "Paid"
    assert billing.get_bill(scope, bill.id).status == "Paid"


def test_delete_bill_keeps_orders(scope, activity):
    customer = add_customer(scope)
    order_id = add_order(scope, customer, 50.0, datetime(2024, 1, 5))
    bill = billing.generate_bill(scope, customer, date(2024, 1, 1), date(2024, 1, 31), activity)

    billing.delete_bill(scope, bill.id, activity)

    assert billing.list_bills(scope)["items"] == []
    assert scope.orders.get(order_id)["total"] == 50.0
    with pytest.raises(RecordNotFound):
        billing.get_bill(scope, bill.id)


def test_bills_page_forward_with_cursor(scope):
    customer = add_customer(scope)
    for day in range(1, 26):
        scope.bills.insert({
            "customer_id": customer,
            "order_ids": [],
            "total": float(day),
            "status": "Pending",
            "created_at": datetime(2024, 1, day),
        })

    first = billing.list_bills(scope, page_size=10)
    second = billing.list_bills(scope, after=first["next_cursor"], page_size=10)
    third = billing.list_bills(scope, after=second["next_cursor"], page_size=10)

    assert [b["total"] for b in first["items"]] == [float(d) for d in range(25, 15, -1)]
    assert [b["total"] for b in second["items"]] == [float(d) for d in range(15, 5, -1)]
    assert [b["total"] for b in third["items"]] == [float(d) for d in range(5, 0, -1)]
    assert first["has_more"] and second["has_more"]
    assert not third["has_more"] and third["next_cursor"] is None
    assert first["items"][0]["customer_name"] == "Meera"


def test_bills_filtered_by_customer(scope, activity):
    meera = add_customer(scope)
    kiran = add_customer(scope, "Kiran")
    add_order(scope, meera, 10.0, datetime(2024, 1, 5))
    add_order(scope, kiran, 20.0, datetime(2024, 1, 5))
    billing.generate_bill(scope, meera, date(2024, 1, 1), date(2024, 1, 31), activity)
    billing.generate_bill(scope, kiran, date(2024, 1, 1), date(2024, 1, 31), activity)

    page = billing.list_bills(scope, customer_id=kiran)

    assert [b["total"] for b in page["items"]] == [20.0]


def test_deleted_customer_shows_placeholder_in_list(scope, activity):
    customer = add_customer(scope)
    add_order(scope, customer, 10.0, datetime(2024, 1, 5))
    billing.generate_bill(scope, customer, date(2024, 1, 1), date(2024, 1, 31), activity)
    scope.customers.delete(customer)

    assert billing.list_bills(scope)["items"][0]["customer_name"] == "N/A"
