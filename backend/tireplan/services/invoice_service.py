"""
Electronic tax invoice issuance (simulated).

Three steps, mirroring the register's wizard:
1. pick a sale (list_invoice_candidates)
2. confirm or correct the buyer's business details (update_buyer_details)
3. submit (submit_invoice): a fixed delay stands in for the tax-authority
   call, after which the sale is stamped tax_invoice_issued_at

The buyer's representative ("CEO") name is stored as the sale's customer
name. No external service is contacted.
"""

from __future__ import annotations

import logging
import time

from flask import current_app

from ..extensions import db
from ..models import Sale, User
from .scope_service import require_visible, visible_sales
from tireplan.time_utils import utcnow

logger = logging.getLogger(__name__)


BUYER_FIELDS = ("business_number", "company_name", "ceo_name", "email")


class InvoiceError(Exception):
    """Raised when an invoice cannot be issued."""
    pass


def _get_sale(identity: User, sale_id: int) -> Sale:
    return require_visible(visible_sales(identity), Sale, sale_id, "Sale")


def buyer_details(sale: Sale) -> dict:
    return {
        "business_number": sale.business_number,
        "company_name": sale.company_name,
        "ceo_name": sale.customer_name,
        "email": sale.customer_email,
    }


def missing_buyer_fields(sale: Sale) -> list[str]:
    return [k for k, v in buyer_details(sale).items() if not (v or "").strip()]


def invoice_view(sale: Sale) -> dict:
    data = sale.to_dict()
    data["buyer"] = buyer_details(sale)
    data["missing_buyer_fields"] = missing_buyer_fields(sale)
    return data


def list_invoice_candidates(
    identity: User,
    requested_only: bool = False,
    store_id: int | None = None,
) -> list[Sale]:
    """Visible, non-canceled sales, newest first."""
    query = visible_sales(identity).filter(Sale.is_canceled.is_(False))
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)
    if requested_only:
        query = query.filter(Sale.is_tax_invoice_requested.is_(True))
    return query.order_by(Sale.sold_at.desc(), Sale.id.desc()).all()


def _clean(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def update_buyer_details(
    identity: User,
    sale_id: int,
    business_number=None,
    company_name=None,
    ceo_name=None,
    email=None,
) -> Sale:
    """Write buyer details onto the sale's customer snapshot."""
    sale = _get_sale(identity, sale_id)
    _write_buyer(sale, business_number, company_name, ceo_name, email)
    db.session.flush()
    return sale


def _write_buyer(sale: Sale, business_number, company_name, ceo_name, email) -> None:
    sale.business_number = _clean(business_number)
    sale.company_name = _clean(company_name)
    sale.customer_name = _clean(ceo_name)
    sale.customer_email = _clean(email)


def _transmit(sale: Sale) -> None:
    """Stand-in for the tax-authority call. Runs with nothing written yet."""
    delay = float(current_app.config.get("INVOICE_TRANSMIT_DELAY_SECONDS", 0) or 0)
    if delay > 0:
        logger.debug("Transmitting tax invoice for sale %s (%.1fs)", sale.id, delay)
        time.sleep(delay)


def submit_invoice(identity: User, sale_id: int, form: dict) -> Sale:
    """
    Issue the invoice for one sale.

    All four buyer fields are required. Canceled sales and sales that were
    already issued are rejected. The submitted details are written back to
    the sale together with the issue stamp after the simulated transmission,
    so no write is pending (and no database write lock held) while it waits.
    """
    sale = _get_sale(identity, sale_id)
    form = form or {}

    missing = [f for f in BUYER_FIELDS if not _clean(form.get(f))]
    if missing:
        raise InvoiceError(f"Missing buyer fields: {', '.join(missing)}")
    if sale.is_canceled:
        raise InvoiceError("Cannot issue an invoice for a canceled sale")
    if sale.tax_invoice_issued_at is not None:
        raise InvoiceError("An invoice was already issued for this sale")

    _transmit(sale)

    _write_buyer(sale, *(form.get(f) for f in BUYER_FIELDS))
    sale.is_tax_invoice_requested = True
    sale.tax_invoice_issued_at = utcnow()
    db.session.flush()

    logger.info("Tax invoice transmitted for sale %s to %s", sale.id, sale.customer_email)
    return sale
