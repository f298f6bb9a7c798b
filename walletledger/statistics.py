"""Dashboard summary and income/expense statistics.

Transactions are loaded into a :class:`pandas.DataFrame` and grouped there.
Amounts stay :class:`~decimal.Decimal` objects inside the frame and are summed
with Python arithmetic so reported totals match the ledger to the cent.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

import pandas as pd
from dateutil.relativedelta import relativedelta

from .database import SQLiteRepository
from .errors import ValidationError
from .models import ENTRY_TYPES, EXPENSE, INCOME, ZERO, to_money, utcnow

FRAME_COLUMNS = [
    "id",
    "wallet_id",
    "category_id",
    "type",
    "amount",
    "transaction_date",
    "category_name",
    "category_icon",
    "category_type",
]

UNCATEGORIZED = "Uncategorized"


def _money_sum(values: Iterable[Decimal]) -> Decimal:
    return to_money(sum(values, ZERO))


def _money(value: Decimal) -> str:
    return str(to_money(value))


def _frame(rows: list[dict[str, object]]) -> pd.DataFrame:
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    if not frame.empty:
        frame["transaction_date"] = pd.to_datetime(frame["transaction_date"], utc=True)
    return frame


def _totals_by(frame: pd.DataFrame, key: str) -> dict[str, dict[str, Decimal]]:
    """Map each ``key`` bucket to its income and expense totals."""

    if frame.empty:
        return {}
    grouped = frame.groupby([key, "type"])["amount"].agg(_money_sum)
    totals: dict[str, dict[str, Decimal]] = {}
    for (bucket, entry_type), amount in grouped.items():
        totals.setdefault(bucket, {})[entry_type] = amount
    return totals


def _flow(income: Decimal, expense: Decimal) -> dict[str, str]:
    return {"income": _money(income), "expense": _money(expense), "net": _money(income - expense)}


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class StatisticsService:
    def __init__(self, repository: SQLiteRepository) -> None:
        self._repository = repository

    def dashboard(self, user_id: str, recent_limit: int = 10) -> dict[str, object]:
        """Totals across active wallets and all transactions, plus recent activity."""

        with self._repository.atomic():
            wallets = self._repository.list_wallets(user_id)
            frame = _frame(self._repository.transactions_frame_rows(user_id))
            recent = self._repository.list_transactions(user_id, limit=recent_limit)

        total_balance = _money_sum(wallet.current_balance for wallet in wallets)
        income = _money_sum(frame.loc[frame["type"] == INCOME, "amount"])
        expense = _money_sum(frame.loc[frame["type"] == EXPENSE, "amount"])

        return {
            "summary": {
                "totalBalance": _money(total_balance),
                "totalIncome": _money(income),
                "totalExpense": _money(expense),
                "netIncome": _money(income - expense),
            },
            "wallets": [
                {
                    "id": wallet.id,
                    "name": wallet.name,
                    "icon": wallet.icon,
                    "color": wallet.color,
                    "currentBalance": _money(wallet.current_balance),
                    "displayOrder": wallet.display_order,
                }
                for wallet in wallets
            ],
            "recentTransactions": [transaction.to_dict() for transaction in recent],
        }

    def monthly(self, user_id: str, months: int = 6, today: Optional[date] = None) -> list[dict[str, object]]:
        """Income, expense and net per calendar month, oldest month first."""

        if months < 1:
            raise ValidationError("months must be positive")
        today = today or utcnow().date()
        first_month = today.replace(day=1) - relativedelta(months=months - 1)
        end = first_month + relativedelta(months=months)

        frame = _frame(
            self._repository.transactions_frame_rows(
                user_id,
                start=_day_start(first_month),
                end=_day_start(end) - timedelta(microseconds=1),
            )
        )
        if not frame.empty:
            frame["month"] = frame["transaction_date"].dt.strftime("%Y-%m")
        totals = _totals_by(frame, "month")

        stats = []
        for offset in range(months):
            month = first_month + relativedelta(months=offset)
            bucket = totals.get(month.strftime("%Y-%m"), {})
            stats.append(
                {
                    "month": month.strftime("%b %Y"),
                    "year": month.year,
                    "monthNumber": month.month,
                    **_flow(bucket.get(INCOME, ZERO), bucket.get(EXPENSE, ZERO)),
                }
            )
        return stats

    def trends(self, user_id: str, days: int = 30, today: Optional[date] = None) -> list[dict[str, object]]:
        """Daily income, expense and net for the last ``days`` days including today."""

        if days < 1:
            raise ValidationError("days must be positive")
        today = today or utcnow().date()
        first_day = today - timedelta(days=days - 1)

        frame = _frame(
            self._repository.transactions_frame_rows(
                user_id,
                start=_day_start(first_day),
                end=_day_start(today + timedelta(days=1)) - timedelta(microseconds=1),
            )
        )
        if not frame.empty:
            frame["day"] = frame["transaction_date"].dt.strftime("%Y-%m-%d")
        totals = _totals_by(frame, "day")

        trends = []
        for offset in range(days):
            key = (first_day + timedelta(days=offset)).isoformat()
            bucket = totals.get(key, {})
            trends.append({"date": key, **_flow(bucket.get(INCOME, ZERO), bucket.get(EXPENSE, ZERO))})
        return trends

    def by_category(
        self,
        user_id: str,
        entry_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, object]]:
        """Totals and counts per category, largest first."""

        if entry_type is not None and entry_type not in ENTRY_TYPES:
            raise ValidationError("Type must be either income or expense")

        frame = _frame(self._repository.transactions_frame_rows(user_id, start=start, end=end))
        if entry_type is not None:
            frame = frame[frame["type"] == entry_type]
        if frame.empty:
            return []

        frame = frame.assign(
            category_key=frame["category_id"].map(lambda value: "none" if pd.isna(value) else str(int(value)))
        )
        stats = []
        for (_, entry), group in frame.groupby(["category_key", "type"]):
            first = group.iloc[0]
            uncategorised = pd.isna(first["category_id"])
            stats.append(
                {
                    "categoryId": None if uncategorised else int(first["category_id"]),
                    "categoryName": UNCATEGORIZED if uncategorised else first["category_name"],
                    "categoryIcon": None if uncategorised else first["category_icon"],
                    "type": entry,
                    "totalAmount": _money_sum(group["amount"]),
                    "count": int(len(group)),
                }
            )
        stats.sort(key=lambda item: item["totalAmount"], reverse=True)
        for item in stats:
            item["totalAmount"] = _money(item["totalAmount"])
        return stats

    def by_wallet(self, user_id: str) -> list[dict[str, object]]:
        """Per active wallet: balances plus lifetime income and expense."""

        stats = []
        with self._repository.atomic():
            for wallet in self._repository.list_wallets(user_id):
                income = self._repository.sum_transactions(wallet.id, INCOME)
                expense = self._repository.sum_transactions(wallet.id, EXPENSE)
                stats.append(
                    {
                        "id": wallet.id,
                        "name": wallet.name,
                        "color": wallet.color,
                        "initialBalance": _money(wallet.initial_balance),
                        "currentBalance": _money(wallet.current_balance),
                        "totalIncome": _money(income),
                        "totalExpense": _money(expense),
                        "netChange": _money(income - expense),
                    }
                )
        return stats
