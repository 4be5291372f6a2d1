from datetime import datetime

from pymongo.errors import PyMongoError

from activity import ActivityLog
from migration import migrate_activities, migrate_cloth_types
from reports import recent_activity, revenue_chart, summarize
from schemas import BillRecord

NOW = datetime(2024, 5, 15, 12, 0)  # a Wednesday


def bill(total, created_at, status="Paid"):
    return BillRecord(id="b" * 24, total=total, created_at=created_at, status=status)


def test_week_chart_buckets_last_seven_days_by_weekday():
    chart = revenue_chart([
        bill(10, datetime(2024, 5, 15, 9)),   # Wed
        bill(5, datetime(2024, 5, 12, 9)),    # Sun
        bill(99, datetime(2024, 5, 1, 9)),    # too old
    ], "Week", NOW)
    assert chart["labels"][0] == "Sun"
    assert chart["data"] == [5.0, 0, 0, 10.0, 0, 0, 0]


def test_month_chart_covers_current_year_to_date():
    chart = revenue_chart([
        bill(10, datetime(2024, 1, 3)),
        bill(20, datetime(2024, 5, 1)),
        bill(40, datetime(2023, 5, 1)),
    ], "Month", NOW)
    assert chart["labels"] == ["Jan", "Feb", "Mar", "Apr", "May"]
    assert chart["data"] == [10.0, 0, 0, 0, 20.0]


def test_year_chart_covers_three_years():
    chart = revenue_chart([bill(10, datetime(2022, 3, 1)), bill(5, datetime(2021, 3, 1))], "Year", NOW)
    assert chart == {"labels": ["2022", "2023", "2024"], "data": [10.0, 0, 0]}


def test_summary_splits_paid_and_pending(scope):
    scope.customers.insert({"name": "Meera"})
    scope.bills.insert({"total": 100.0, "status": "Paid", "created_at": datetime(2024, 5, 1)})
    scope.bills.insert({"total": 30.0, "status": "Pending", "created_at": datetime(2024, 5, 2)})
    scope.bills.insert({"total": 20.0, "status": "Unpaid", "created_at": datetime(2024, 5, 3)})

    summary = summarize(scope, "Month", now=NOW)

    assert summary["total_customers"] == 1
    assert summary["total_paid"] == 100.0
    assert summary["total_pending"] == 50.0
    assert summary["chart"]["data"][4] == 100.0


def test_malformed_activities_are_skipped(scope):
    scope.activities.insert({"type": "bill_created", "doc_id": "b1", "created_at": datetime(2024, 1, 1)})
    scope.activities.insert({"type": "bill_created", "doc_id": {"oops": 1}, "created_at": datetime(2024, 1, 2)})

    assert [a.doc_id for a in recent_activity(scope)] == ["b1"]


def test_activity_write_failures_are_swallowed(scope, caplog):
    class BrokenRepository:
        def insert(self, data):
            raise PyMongoError("connection refused")

    log = ActivityLog(BrokenRepository())
    log.record("customer_created", "c1", {"name": "Meera"})

    assert log.flush() == 0
    assert not log.pending
    assert "Dropping customer_created activity" in caplog.text


def test_migrate_activities_unwraps_references(database):
    database["activities"].insert_many([
        {"type": "bill_created", "docId": {"documentId": "b1"}},
        {"type": "bill_created", "doc_id": "b2"},
    ])

    assert migrate_activities(database) == 1
    assert migrate_activities(database) == 0
    assert sorted(d["doc_id"] for d in database["activities"].find()) == ["b1", "b2"]


def test_migrate_cloth_types_moves_legacy_collection(database):
    database["clothTypes"].insert_many([
        {"name": "Shirt", "rate": 20, "userEmail": "owner@example.com"},
        {"name": "Pant", "rate": 30, "userEmail": "owner@example.com"},
    ])

    assert migrate_cloth_types(database) == 2
    assert database["clothTypes"].count_documents({}) == 0
    moved = list(database["cloth-types"].find({"owner_email": "owner@example.com"}))
    assert sorted(d["name"] for d in moved) == ["Pant", "Shirt"]
