"""
HTML invoices for bills.

The renderer re-reads the bill's customer, order and cloth types at render
time. Anything that has since been deleted shows as "N/A" instead of failing
the render. Turning the HTML into a PDF and sharing it belongs to the client.
"""
import logging
from dataclasses import dataclass
from html import escape
from typing import List

from catalog import name_lookup
from orders import PLACEHOLDER
from repository import OwnerScope
from schemas import BillRecord, CustomerRecord, OrderItemRecord, OrderRecord, ShopRecord
from shop import get_or_create_shop

logger = logging.getLogger(__name__)

OVERFLOW = "overflow"

ONES = [
    "", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen",
]
TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]

# (digits, suffix) for the zero-padded 9-digit amount
GROUPS = [(2, "crore"), (2, "lakh"), (2, "thousand"), (1, "hundred"), (2, "")]

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _group_words(value: int) -> str:
    if value < 20:
        return ONES[value]
    tens, ones = divmod(value, 10)
    return " ".join(w for w in (TENS[tens], ONES[ones]) if w)


def number_to_words(amount) -> str:
    """Indian-numbering words for a rupee amount, e.g. 1250 -> 'one thousand two hundred and fifty only'.

    Paise are truncated. Amounts of more than nine digits give 'overflow'.
    """
    rupees = int(amount)
    if rupees < 0:
        raise ValueError("amount must not be negative")
    digits = str(rupees)
    if len(digits) > 9:
        return OVERFLOW
    if rupees == 0:
        return "zero only"

    digits = digits.zfill(9)
    words = []
    pos = 0
    for width, suffix in GROUPS:
        value = int(digits[pos:pos + width])
        pos += width
        if value == 0:
            continue
        if not suffix and words:
            words.append("and")
        words.append(_group_words(value))
        if suffix:
            words.append(suffix)
    words.append("only")
    return " ".join(words)


@dataclass
class InvoiceLine:
    description: str
    quantity: int
    rate: float
    amount: float


@dataclass
class InvoiceDocument:
    bill_id: str
    invoice_number: str
    html: str
    amount_in_words: str
    file_name: str


def _money(value: float) -> str:
    return f"₹{value:.2f}"


def invoice_file_name(customer_name: str, bill: BillRecord) -> str:
    issued = bill.created_at
    period = f"{MONTHS[issued.month - 1]}{issued.year}" if issued else ""
    name = "_".join(customer_name.replace("/", "").split()) or "invoice"
    return f"{name}-{bill.invoice_number}-{period}.pdf"


def _lines(scope: OwnerScope, bill: BillRecord) -> List[InvoiceLine]:
    # Only the first order is expanded; multi-order bills list that order's items.
    if not bill.order_ids:
        return []
    order_doc = scope.orders.get_or_none(bill.order_ids[0])
    if order_doc is None:
        logger.warning("Invoice for bill %s: order %s is missing", bill.id, bill.order_ids[0])
        return []
    items: List[OrderItemRecord] = OrderRecord.from_document(order_doc).items
    names = name_lookup(scope, {i.cloth_type_id for i in items if i.cloth_type_id})
    return [
        InvoiceLine(
            description=names.get(i.cloth_type_id, PLACEHOLDER),
            quantity=i.quantity,
            rate=i.rate,
            amount=i.line_total,
        )
        for i in items
    ]


def render_html(shop: ShopRecord, bill: BillRecord, customer: CustomerRecord, lines: List[InvoiceLine], amount_in_words: str) -> str:
    rows = "".join(
        f"""
            <tr>
                <td>{n}</td>
                <td style="text-align: left;">{escape(line.description)}</td>
                <td>{line.quantity}</td>
                <td>{_money(line.rate)}</td>
                <td>{_money(line.amount)}</td>
            </tr>"""
        for n, line in enumerate(lines, start=1)
    )
    issued = bill.created_at.strftime("%d/%m/%Y") if bill.created_at else PLACEHOLDER
    return f"""<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{ font-family: Arial, sans-serif; color: #333; }}
        .invoice-box {{ max-width: 800px; margin: auto; padding: 30px; border: 1px solid #eee; }}
        .header {{ display: flex; justify-content: space-between; align-items: flex-start; }}
        .company-name, .invoice-title {{ font-size: 28px; font-weight: bold; color: #E74C3C; margin-bottom: 5px; }}
        .invoice-details {{ text-align: right; }}
        .customer-info {{ margin-top: 30px; }}
        .info-label {{ font-weight: bold; display: inline-block; width: 120px; }}
        .item-table {{ width: 100%; border-collapse: collapse; margin-top: 20px; }}
        .item-table th, .item-table td {{ border: 1px solid #ddd; padding: 8px; text-align: center; }}
        .item-table th {{ background-color: #f2f2f2; }}
        .footer {{ display: flex; justify-content: space-between; margin-top: 20px; border-top: 1px solid #ddd; padding-top: 10px; }}
    </style>
</head>
<body>
    <div class="invoice-box">
        <div class="header">
            <div class="company-details">
                <div class="company-name">{escape(shop.shop_name or "-")}</div>
                <div>{escape(shop.address or "-")}</div>
                <div>{escape(shop.mobile or "-")}</div>
                <div>{escape(shop.email or "-")}</div>
            </div>
            <div class="invoice-details">
                <div class="invoice-title">INVOICE</div>
                <div><strong>Invoice No. :</strong> #{escape(bill.invoice_number)}</div>
                <div><strong>Invoice Date :</strong> {issued}</div>
            </div>
        </div>
        <div class="customer-info">
            <div><span class="info-label">Name:</span> {escape(customer.name or PLACEHOLDER)}</div>
            <div><span class="info-label">Address:</span> {escape(customer.address or PLACEHOLDER)}</div>
            <div><span class="info-label">Phone Number:</span> {escape(customer.phone or PLACEHOLDER)}</div>
        </div>
        <table class="item-table">
            <thead>
                <tr>
                    <th>Sl.No.</th>
                    <th>Description</th>
                    <th>Qty.</th>
                    <th>Rate (&#8377;)</th>
                    <th>Amount (&#8377;)</th>
                </tr>
            </thead>
            <tbody>{rows}
            </tbody>
        </table>
        <div class="footer">
            <div><strong>Rupees in words:</strong> {escape(amount_in_words)}</div>
            <div><strong>Total:</strong> {_money(bill.total)}</div>
        </div>
    </div>
</body>
</html>"""


def render_invoice(scope: OwnerScope, bill_id: str) -> InvoiceDocument:
    bill = BillRecord.from_document(scope.bills.get(bill_id))
    customer_doc = scope.customers.get_or_none(bill.customer_id)
    if customer_doc is None:
        logger.warning("Invoice for bill %s: customer %s is missing", bill.id, bill.customer_id)
        customer = CustomerRecord(id=bill.customer_id or "", name=PLACEHOLDER)
    else:
        customer = CustomerRecord.from_document(customer_doc)

    amount_in_words = number_to_words(bill.total)
    html = render_html(get_or_create_shop(scope), bill, customer, _lines(scope, bill), amount_in_words)
    return InvoiceDocument(
        bill_id=bill.id,
        invoice_number=bill.invoice_number,
        html=html,
        amount_in_words=amount_in_words,
        file_name=invoice_file_name(customer.name, bill),
    )
