from datetime import datetime

import pytest
from bson import ObjectId
from pydantic import ValidationError

from schemas import ActivityRecord, BillRecord, OrderRecord


def test_activity_reference_object_is_unwrapped():
    record = ActivityRecord.from_document({
        "_id": ObjectId(),
        "type": "bill_created",
        "docId": {"documentId": "abc123", "path": "bills/abc123"},
    })
    assert record.doc_id == "abc123"


def test_activity_reference_without_id_is_rejected():
    with pytest.raises(ValidationError):
        ActivityRecord.from_document({"_id": ObjectId(), "type": "x", "doc_id": {"path": "bills"}})


def test_legacy_order_fields_are_normalised():
    _id = ObjectId()
    record = OrderRecord.from_document({
        "_id": _id,
        "customerId": "c1",
        "userEmail": "owner@example.com",
        "lastModified": datetime(2024, 1, 2),
        "items": [{"clothTypeId": "t1", "quantity": "3", "price": 20, "totalPrice": 60}],
        "total": 60,
    })
    assert record.id == str(_id)
    assert record.customer_id == "c1"
    assert record.owner_email == "owner@example.com"
    assert record.items[0].cloth_type_id == "t1"
    assert record.items[0].quantity == 3
    assert record.items[0].line_total == 60.0


def test_unknown_bill_status_is_rejected():
    with pytest.raises(ValidationError):
        BillRecord.from_document({"_id": ObjectId(), "status": "Overdue"})


def test_invoice_number_is_first_five_characters():
    assert BillRecord(id="65f1c0ffee0000000000abcd").invoice_number == "65f1c"
