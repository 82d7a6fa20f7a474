from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Union

import pandas as pd

from petstock.models import Sale
from petstock.services import catalog, ledger
from petstock.store import DocumentStore
from petstock.utils import days_between, month_bounds, to_date


@dataclass(frozen=True)
class TopSeller:
    name: str
    quantity: int


class _NoData:
    """Sentinel for a range with zero sales."""

    _instance: Optional["_NoData"] = None

    def __new__(cls) -> "_NoData":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = _NoData()


@dataclass(frozen=True)
class DashboardSummary:
    total_stock: int
    expiring_soon: int
    revenue_today: Decimal
    items_sold_today: int
    revenue_this_month: Decimal
    top_seller_last_week: Union[TopSeller, _NoData]
    top_seller_this_month: Union[TopSeller, _NoData]


def _revenue(sales: list[Sale]) -> Decimal:
    return sum((s.total_amount for s in sales), Decimal(0))


def revenue_for_day(store: DocumentStore, day: Any) -> Decimal:
    return _revenue(ledger.sales_on_date(store, day))


def items_sold_on_day(store: DocumentStore, day: Any) -> int:
    return ledger.sold_quantity(ledger.sales_on_date(store, day))


def revenue_for_month(store: DocumentStore, day: Any) -> Decimal:
    start, end = month_bounds(to_date(day))
    return _revenue(ledger.sales_in_range(store, start, end))


def _top_seller(sales: list[Sale]) -> Union[TopSeller, _NoData]:
    if not sales:
        return NO_DATA
    totals: dict[str, int] = {}
    for s in sales:
        totals[s.product_name] = totals.get(s.product_name, 0) + s.quantity
    # max() keeps the first key reached among equal totals
    name = max(totals, key=lambda k: totals[k])
    return TopSeller(name=name, quantity=totals[name])


def top_seller_in_range(store: DocumentStore, start: Any, end: Any) -> Union[TopSeller, _NoData]:
    """Product name with the most units sold in [start, end]; NO_DATA if nothing sold."""
    return _top_seller(ledger.sales_in_range(store, start, end))


def top_seller_last_week(store: DocumentStore, today: date) -> Union[TopSeller, _NoData]:
    return top_seller_in_range(store, today - timedelta(days=6), today)


def top_seller_this_month(store: DocumentStore, today: date) -> Union[TopSeller, _NoData]:
    start, end = month_bounds(today)
    return top_seller_in_range(store, start, end)


def daily_revenue_series(store: DocumentStore, start: Any, end: Any) -> pd.DataFrame:
    """One row per calendar day in [start, end], zero-filled: date, revenue, items."""
    s_d, e_d = to_date(start), to_date(end)
    sales = ledger.sales_in_range(store, s_d, e_d)
    days = days_between(s_d, e_d)

    base = pd.DataFrame({"date": days})
    if not sales:
        base["revenue"] = 0.0
        base["items"] = 0
        return base

    df = pd.DataFrame(
        [{"date": s.sale_date, "revenue": float(s.total_amount), "items": s.quantity} for s in sales]
    )
    grouped = df.groupby("date", as_index=False)[["revenue", "items"]].sum()
    out = base.merge(grouped, on="date", how="left")
    out["revenue"] = out["revenue"].fillna(0.0).astype(float)
    out["items"] = out["items"].fillna(0).astype(int)
    return out


def weekly_revenue(store: DocumentStore, today: date) -> pd.DataFrame:
    return daily_revenue_series(store, today - timedelta(days=6), today)


def monthly_revenue(store: DocumentStore, today: date) -> pd.DataFrame:
    start, end = month_bounds(today)
    return daily_revenue_series(store, start, end)


def summary(store: DocumentStore, today: date, expiry_window_days: int = 30) -> DashboardSummary:
    return DashboardSummary(
        total_stock=catalog.total_stock(store),
        expiring_soon=len(catalog.expiring_products(store, today, expiry_window_days)),
        revenue_today=revenue_for_day(store, today),
        items_sold_today=items_sold_on_day(store, today),
        revenue_this_month=revenue_for_month(store, today),
        top_seller_last_week=top_seller_last_week(store, today),
        top_seller_this_month=top_seller_this_month(store, today),
    )
