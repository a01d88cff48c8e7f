"""
Dashboard figures: monthly revenue with a previous-month comparison, a
per-day revenue series, and the branch day board.

Canceled sales never count. Sales are bucketed by business day in
BUSINESS_TIMEZONE; expenses and leave requests carry plain dates.

Comparison rule: while the month being viewed is the current month, the
previous month only counts up to the same day number ("same period"). The
previous month's daily average always uses the whole month.
"""
from __future__ import annotations

import calendar
from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..models import (
    ExpenseRecord, LeaveRequest, Sale, StockInRecord, StockTransferRecord, User,
    PAYMENT_METHODS,
)
from .scope_service import (
    visible_expenses, visible_leave_requests, visible_sales,
    visible_stock_in_records, visible_stores, visible_transfers,
)
from tireplan.time_utils import day_window, local_date, month_window, parse_iso_date, utcnow

MAX_SERIES_DAYS = 62


class ReportError(Exception):
    pass


def _tz() -> str | None:
    return current_app.config.get("BUSINESS_TIMEZONE")


def business_today() -> date:
    return local_date(utcnow(), _tz())


def _parse_day(value, field: str) -> date:
    try:
        day = parse_iso_date(value) if isinstance(value, str) else value
    except ValueError:
        day = None
    if day is None:
        raise ReportError(f"{field} must be YYYY-MM-DD")
    return day


def _sales_between(identity: User, first: date, last_exclusive: date, store_id: int | None) -> list[Sale]:
    """Non-canceled sales whose business day is in [first, last_exclusive)."""
    tz = _tz()
    start, _ = day_window(first, tz)
    end, _ = day_window(last_exclusive, tz)
    query = visible_sales(identity).filter(
        Sale.sold_at >= start,
        Sale.sold_at < end,
        Sale.is_canceled.is_(False),
    )
    if store_id is not None:
        query = query.filter(Sale.store_id == store_id)
    return query.order_by(Sale.sold_at, Sale.id).all()


def revenue_by_method(sales: list[Sale]) -> dict[str, int]:
    totals = {method: 0 for method in sorted(PAYMENT_METHODS)}
    for sale in sales:
        totals[sale.payment_method] = totals.get(sale.payment_method, 0) + sale.total_amount
    return totals


def _units(sales: list[Sale]) -> int:
    return sum(item.quantity for sale in sales for item in sale.items)


def growth_percent(current: int, previous: int) -> float:
    """Change against previous in percent, one decimal. No base counts as +100% (or 0)."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def _day_row(day: date, sales: list[Sale]) -> dict:
    by_method = revenue_by_method(sales)
    return {
        "date": day.isoformat(),
        **by_method,
        "revenue": sum(by_method.values()),
        "sale_count": len(sales),
        "units": _units(sales),
    }


def _group_by_day(sales: list[Sale]) -> dict[date, list[Sale]]:
    tz = _tz()
    grouped: dict[date, list[Sale]] = {}
    for sale in sales:
        grouped.setdefault(local_date(sale.sold_at, tz), []).append(sale)
    return grouped


def daily_summary(identity: User, start, days: int = 7, store_id: int | None = None) -> list[dict]:
    """
    One row per business day from start: revenue per payment method, total,
    sale count and units sold.
    """
    first = _parse_day(start, "start")
    try:
        days = int(days)
    except (TypeError, ValueError):
        raise ReportError("days must be an integer")
    if not 1 <= days <= MAX_SERIES_DAYS:
        raise ReportError(f"days must be between 1 and {MAX_SERIES_DAYS}")

    sales = _sales_between(identity, first, first + timedelta(days=days), store_id)
    grouped = _group_by_day(sales)
    return [
        _day_row(first + timedelta(days=i), grouped.get(first + timedelta(days=i), []))
        for i in range(days)
    ]


def monthly_summary(identity: User, month: str, store_id: int | None = None, *,
                    today: date | None = None) -> dict:
    """
    Revenue for a "YYYY-MM" month against the previous month.

    Includes the per-day calendar of the month and each branch's share.
    """
    try:
        first, next_first = month_window(month)
    except ValueError:
        raise ReportError("month must be YYYY-MM")
    today = today or business_today()

    prev_first = (first - timedelta(days=1)).replace(day=1)
    sales = _sales_between(identity, first, next_first, store_id)
    prev_sales = _sales_between(identity, prev_first, first, store_id)

    is_current_month = (today.year, today.month) == (first.year, first.month)
    if is_current_month:
        tz = _tz()
        same_period = [s for s in prev_sales if local_date(s.sold_at, tz).day <= today.day]
    else:
        same_period = prev_sales

    by_method = revenue_by_method(sales)
    revenue = sum(by_method.values())
    prev_by_method = revenue_by_method(same_period)
    prev_revenue = sum(prev_by_method.values())
    prev_full_revenue = sum(s.total_amount for s in prev_sales)
    prev_days = calendar.monthrange(prev_first.year, prev_first.month)[1]

    stores = visible_stores(identity).all()
    by_store = []
    for store in stores:
        if store_id is not None and store.id != store_id:
            continue
        store_revenue = sum(s.total_amount for s in sales if s.store_id == store.id)
        if store_revenue > 0:
            by_store.append({"store_id": store.id, "store_name": store.name, "revenue": store_revenue})

    grouped = _group_by_day(sales)
    days = []
    day = first
    while day < next_first:
        days.append(_day_row(day, grouped.get(day, [])))
        day += timedelta(days=1)

    return {
        "month": first.strftime("%Y-%m"),
        "store_id": store_id,
        "revenue": revenue,
        "by_payment_method": by_method,
        "sale_count": len(sales),
        "units": _units(sales),
        "by_store": by_store,
        "days": days,
        "previous_month": {
            "month": prev_first.strftime("%Y-%m"),
            "through_day": today.day if is_current_month else None,
            "revenue": prev_revenue,
            "by_payment_method": prev_by_method,
            "daily_average": round(prev_full_revenue / prev_days),
        },
        "revenue_growth": growth_percent(revenue, prev_revenue),
        "payment_growth": {
            method: growth_percent(by_method[method], prev_by_method.get(method, 0))
            for method in by_method
        },
    }


def day_board(identity: User, day, store_id: int | None = None, *,
              include_purchase_price: bool = True) -> dict:
    """
    What happened at the branch on one business day: sales, stock-ins,
    transfers in or out, expenses and leave.
    """
    day = _parse_day(day, "date")
    start, end = day_window(day, _tz())

    sales = _sales_between(identity, day, day + timedelta(days=1), store_id)

    stock_ins = visible_stock_in_records(identity).filter(
        StockInRecord.received_at >= start, StockInRecord.received_at < end,
    )
    transfers = visible_transfers(identity).filter(
        StockTransferRecord.transferred_at >= start, StockTransferRecord.transferred_at < end,
    )
    expenses = visible_expenses(identity).filter(ExpenseRecord.date == day)
    leave = visible_leave_requests(identity).filter(LeaveRequest.date == day)
    if store_id is not None:
        stock_ins = stock_ins.filter(StockInRecord.store_id == store_id)
        transfers = transfers.filter(
            db.or_(StockTransferRecord.from_store_id == store_id, StockTransferRecord.to_store_id == store_id)
        )
        expenses = expenses.filter(ExpenseRecord.store_id == store_id)
        leave = leave.filter(LeaveRequest.store_id == store_id)

    stock_ins = stock_ins.order_by(StockInRecord.received_at, StockInRecord.id).all()
    transfers = transfers.order_by(StockTransferRecord.transferred_at, StockTransferRecord.id).all()
    expenses = expenses.order_by(ExpenseRecord.id).all()
    leave = leave.order_by(LeaveRequest.id).all()

    return {
        "date": day.isoformat(),
        "store_id": store_id,
        "summary": _day_row(day, sales),
        "sales": [s.to_dict() for s in sales],
        "stock_ins": [r.to_dict(include_purchase_price=include_purchase_price) for r in stock_ins],
        "transfers": [t.to_dict() for t in transfers],
        "expenses": [e.to_dict() for e in expenses],
        "expense_total": sum(e.amount for e in expenses),
        "leave": [r.to_dict() for r in leave],
    }
