"""
Database Schemas for the Laundry Shop Billing API

Request payloads are validated with the *In/*Request models. Documents read
back from MongoDB pass through the *Record models, which turn `_id` into a
string `id` and normalise legacy field shapes, so the rest of the code never
branches on how a document happens to be stored.

Collections: customers, cloth-types, orders, bills, activities, shops, users.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

BillStatus = Literal["Pending", "Paid", "Unpaid"]
BILL_STATUSES = ("Pending", "Paid", "Unpaid")
TimeRange = Literal["Week", "Month", "Year"]


# ----- Request payloads -----

class CustomerIn(BaseModel):
    name: str = Field("", description="Customer name (required)")
    address: str = Field("", description="Postal address")
    phone: str = Field("", description="Phone number")


class ClothTypeIn(BaseModel):
    name: str = Field("", description="Cloth type shown on orders and invoices")
    rate: float = Field(0, description="Unit rate in INR, must be positive")


class OrderItemIn(BaseModel):
    cloth_type_id: Optional[str] = Field(None, description="Referenced cloth-types id")
    quantity: int = Field(1, description="Number of pieces")
    rate: Optional[float] = Field(None, gt=0, description="Unit rate; looked up from the catalog when omitted")


class OrderIn(BaseModel):
    customer_id: Optional[str] = Field(None, description="Referenced customers id")
    items: List[OrderItemIn] = Field(default_factory=list)
    status: BillStatus = "Pending"


class BillGenerateRequest(BaseModel):
    customer_id: Optional[str] = None
    start_date: date
    end_date: date


class BillStatusUpdate(BaseModel):
    status: BillStatus


class ShopUpdate(BaseModel):
    shop_name: Optional[str] = None
    address: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    operating_hours: Optional[str] = None


class RegisterRequest(BaseModel):
    email: str
    password: str
    owner_name: str = ""
    shop_name: str = ""
    mobile: str = ""
    address: str = ""


class LoginBody(BaseModel):
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    email: str


# ----- Stored records -----

class Record(BaseModel):
    """Base for documents read from MongoDB."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    owner_email: Optional[str] = Field(None, validation_alias=AliasChoices("owner_email", "userEmail"))
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))

    @classmethod
    def from_document(cls, doc: Dict[str, Any]):
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class CustomerRecord(Record):
    name: str = ""
    address: str = ""
    phone: str = ""


class ClothTypeRecord(Record):
    name: str = ""
    rate: float = Field(0.0, validation_alias=AliasChoices("rate", "price", "unit_rate"))
    last_modified: Optional[datetime] = Field(None, validation_alias=AliasChoices("last_modified", "lastModified"))


class OrderItemRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    cloth_type_id: Optional[str] = Field(None, validation_alias=AliasChoices("cloth_type_id", "clothTypeId"))
    quantity: int = 0
    rate: float = Field(0.0, validation_alias=AliasChoices("rate", "price"))
    line_total: float = Field(0.0, validation_alias=AliasChoices("line_total", "totalPrice"))

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_from_text(cls, value):
        if isinstance(value, str):
            return int(value or 0)
        return value


class OrderRecord(Record):
    customer_id: Optional[str] = Field(None, validation_alias=AliasChoices("customer_id", "customerId"))
    items: List[OrderItemRecord] = Field(default_factory=list)
    total: float = 0.0
    status: BillStatus = "Pending"
    last_modified: Optional[datetime] = Field(None, validation_alias=AliasChoices("last_modified", "lastModified"))


class BillRecord(Record):
    customer_id: Optional[str] = Field(None, validation_alias=AliasChoices("customer_id", "customerId"))
    order_ids: List[str] = Field(default_factory=list, validation_alias=AliasChoices("order_ids", "orderIds"))
    start_date: Optional[datetime] = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: Optional[datetime] = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    total: float = 0.0
    status: BillStatus = "Pending"

    @property
    def invoice_number(self) -> str:
        return self.id[:5]


class ActivityRecord(Record):
    type: str
    doc_id: str = Field("", validation_alias=AliasChoices("doc_id", "docId"))
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("doc_id", mode="before")
    @classmethod
    def _unwrap_document_reference(cls, value):
        # Older writes stored a document reference object instead of its id.
        if isinstance(value, dict):
            value = value.get("documentId")
            if not isinstance(value, str):
                raise ValueError("activity doc_id reference has no documentId")
        return "" if value is None else str(value)


class ShopRecord(Record):
    shop_name: str = Field("", validation_alias=AliasChoices("shop_name", "shopName"))
    address: str = ""
    mobile: str = ""
    email: str = ""
    operating_hours: str = Field("", validation_alias=AliasChoices("operating_hours", "operatingHours"))
