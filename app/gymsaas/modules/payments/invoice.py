"""
Single-page A4 invoice for a payment, drawn with the reportlab canvas.

Owner payments are issued by the platform (PLATFORM_NAME / PLATFORM_ADDRESS);
member payments are issued by the member's gym.
"""
from __future__ import annotations

from datetime import date, datetime
from io import BytesIO
from typing import TYPE_CHECKING

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from app.gymsaas.constants import PAYMENT_METHOD_LABELS, SUBSCRIPTION_OWNER

if TYPE_CHECKING:
    from app.gymsaas.models import User
    from app.gymsaas.modules.payments.models import Payment

PAGE_W, PAGE_H = A4
LEFT_X = 50
RIGHT_X = PAGE_W - 50
TABLE_W = RIGHT_X - LEFT_X
DESC_W = 360
ROW_H = 30
LINE = 15


def invoice_number(payment: "Payment") -> str:
    return f"{payment.id:08d}"


def format_currency(amount: int | None, currency: str = "PKR") -> str:
    return f"{currency} {int(amount or 0):,}"


def format_date(value: datetime | date | None) -> str:
    if value is None:
        return ""
    return f"{value:%B} {value.day}, {value.year}"


def _bill_to_lines(customer: "User") -> list[str]:
    lines = [customer.full_name or customer.email or ""]
    if customer.email:
        lines.append(customer.email)
    if customer.phone_number:
        lines.append(customer.phone_number)
    if customer.address:
        lines.append(customer.address)
    if customer.city or customer.state:
        lines.append(f"{customer.city or ''}, {customer.state or ''} {customer.zip_code or ''}".strip(" ,"))
    if customer.country:
        lines.append(customer.country)
    return lines


def _issuer_lines(payment: "Payment", platform_name: str, platform_address: list[str]) -> list[str]:
    if payment.subscription_type == SUBSCRIPTION_OWNER or payment.member_subscription is None:
        return [platform_name, *platform_address]
    gym = payment.member_subscription.member.gym
    lines = [gym.name or "Gym"]
    if gym.address:
        lines.append(gym.address)
    if gym.city and gym.state:
        lines.append(f"{gym.city}, {gym.state} {gym.zip_code or ''}".strip())
    if gym.country:
        lines.append(gym.country)
    if gym.phone_number:
        lines.append(f"Phone: {gym.phone_number}")
    return lines


def render_invoice_pdf(
    payment: "Payment",
    *,
    platform_name: str = "Gym SaaS",
    platform_address: list[str] | None = None,
    currency: str = "PKR",
) -> bytes:
    """Render the invoice and return the PDF bytes."""
    if payment.subscription_type == SUBSCRIPTION_OWNER:
        sub = payment.owner_subscription
        customer = sub.owner
        description = f"{sub.plan.name} - {sub.billing_model} Subscription"
    else:
        sub = payment.member_subscription
        customer = sub.member.user
        description = (
            f"Member Subscription - {sub.billing_model} "
            f"({format_date(sub.start_date)} to {format_date(sub.end_date)})"
        )

    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Invoice {invoice_number(payment)}")

    def y(offset: float) -> float:
        # offsets are measured from the top edge
        return PAGE_H - offset

    c.setFont("Helvetica-Bold", 24)
    c.drawCentredString(PAGE_W / 2, y(70), "INVOICE")

    # Invoice details (left) and issuer block (right)
    details = [
        f"Invoice #: {invoice_number(payment)}",
        f"Date: {format_date(payment.payment_date)}",
        f"Payment Method: {PAYMENT_METHOD_LABELS.get(payment.payment_method, payment.payment_method)}",
        f"Subscription Period: {format_date(sub.start_date)} - {format_date(sub.end_date)}",
    ]
    if payment.transaction_id:
        details.append(f"Transaction ID: {payment.transaction_id}")

    top = 120
    c.setFont("Helvetica", 10)
    left_y = top
    for line in details:
        c.drawString(LEFT_X, y(left_y), line)
        left_y += LINE

    right_y = top
    for i, line in enumerate(_issuer_lines(payment, platform_name, platform_address or [])):
        c.setFont("Helvetica-Bold" if i == 0 else "Helvetica", 10 if i == 0 else 9)
        c.drawRightString(RIGHT_X, y(right_y), line)
        right_y += LINE

    # Bill To
    bill_y = max(left_y, right_y) + 35
    c.setFont("Helvetica-Bold", 11)
    c.drawString(LEFT_X, y(bill_y), "Bill To:")
    c.setFont("Helvetica", 10)
    for line in _bill_to_lines(customer):
        bill_y += LINE
        c.drawString(LEFT_X, y(bill_y), line)

    # Items table: header row + one line item
    table_top = bill_y + 40
    c.rect(LEFT_X, y(table_top + ROW_H), TABLE_W, ROW_H, stroke=1, fill=0)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(LEFT_X + 10, y(table_top + 19), "Description")
    c.drawRightString(RIGHT_X - 10, y(table_top + 19), "Amount")

    row_top = table_top + ROW_H
    c.rect(LEFT_X, y(row_top + ROW_H), TABLE_W, ROW_H, stroke=1, fill=0)
    c.setFont("Helvetica", 10)
    desc_lines = simpleSplit(description, "Helvetica", 10, DESC_W - 20)
    c.drawString(LEFT_X + 10, y(row_top + 19), desc_lines[0] if desc_lines else "")
    c.drawRightString(RIGHT_X - 10, y(row_top + 19), format_currency(payment.amount, currency))

    notes_y = row_top + ROW_H + 25
    if payment.notes:
        c.setFont("Helvetica-Bold", 10)
        c.drawString(LEFT_X, y(notes_y), "Notes:")
        c.setFont("Helvetica", 9)
        for line in simpleSplit(payment.notes, "Helvetica", 9, TABLE_W):
            notes_y += 13
            c.drawString(LEFT_X, y(notes_y), line)
        notes_y += 20

    # Totals box
    box_w, box_h = 200, 60
    box_x = RIGHT_X - box_w
    box_top = notes_y + 10
    c.rect(box_x, y(box_top + box_h), box_w, box_h, stroke=1, fill=0)
    c.setFont("Helvetica", 10)
    c.drawString(box_x + 10, y(box_top + 20), "Subtotal:")
    c.drawRightString(RIGHT_X - 10, y(box_top + 20), format_currency(payment.amount, currency))
    c.setFont("Helvetica-Bold", 10)
    c.drawString(box_x + 10, y(box_top + 45), "Total:")
    c.drawRightString(RIGHT_X - 10, y(box_top + 45), format_currency(payment.amount, currency))

    c.setFont("Helvetica", 8)
    c.drawCentredString(PAGE_W / 2, 70, "Thank you for your business!")
    c.drawCentredString(PAGE_W / 2, 55, "This is a computer-generated invoice.")

    c.showPage()
    c.save()
    return buf.getvalue()
