from io import BytesIO

from flask import Blueprint, current_app, g, jsonify, send_file

from app.gymsaas.db import db_session
from app.gymsaas.models import User
from app.gymsaas.modules.payments.invoice import render_invoice_pdf
from app.gymsaas.modules.payments.service import (
    create_payment,
    get_payment_for_invoice,
    payments_query,
    serialize_payment,
)
from app.gymsaas.rbac import require_admin_or_owner
from app.gymsaas.utils import json_body, paginate

bp = Blueprint("payments", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.post("/createpayment")
@require_admin_or_owner
def createpayment():
    s = db_session()
    payment = create_payment(s, json_body(), _current_user())
    s.commit()
    return jsonify({"message": "Payment created successfully", "data": serialize_payment(payment)}), 201


@bp.post("/getpayments")
@require_admin_or_owner
def getpayments():
    s = db_session()
    body = json_body()
    q = payments_query(s, _current_user(), body)
    return jsonify(paginate(q, body, serialize=serialize_payment))


@bp.post("/generateinvoice")
@require_admin_or_owner
def generateinvoice():
    s = db_session()
    payment = get_payment_for_invoice(s, json_body().get("payment_id"), _current_user())
    cfg = current_app.config
    pdf = render_invoice_pdf(
        payment,
        platform_name=cfg.get("PLATFORM_NAME") or "Gym SaaS",
        platform_address=cfg.get("PLATFORM_ADDRESS") or [],
        currency=cfg.get("CURRENCY") or "PKR",
    )
    current_app.logger.info("Generated invoice for payment %s (%s bytes)", payment.id, len(pdf))
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"invoice-{payment.id}.pdf",
    )
