"""Domain models used by the walletledger service.

The classes defined here are lightweight data containers that do not know
anything about persistence or transport concerns. Monetary values are always
:class:`~decimal.Decimal` quantized to cents; binary floats never reach a
balance.
"""
from __future__ import annotations

import decimal
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Generic, Optional, TypeVar

from .errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest amount a single entry may carry; sums of many stay exact in the
# default 28-digit decimal context.
MAX_AMOUNT = Decimal("999999999999999.99")

INCOME = "income"
EXPENSE = "expense"
ENTRY_TYPES = (INCOME, EXPENSE)


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize ``value`` to two decimal places."""

    try:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except decimal.InvalidOperation as exc:
        raise ValidationError("Amount is out of range") from exc


def parse_amount(value: Decimal | int | str, label: str = "Amount") -> Decimal:
    """Validate a caller-supplied monetary value and return it in cents.

    The value must be a finite number no larger than :data:`MAX_AMOUNT` in
    magnitude, with at most two decimal places. Nothing is rounded.
    """

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except decimal.InvalidOperation as exc:
        raise ValidationError(f"{label} must be a number") from exc
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a finite number")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{label} is out of range")
    exact = amount.quantize(CENT)
    if exact != amount:
        raise ValidationError(f"{label} cannot have more than two decimal places")
    return exact


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat()


def _money(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(to_money(value))


@dataclass(slots=True)
class Wallet:
    """A place money is kept in: cash, a bank account, an e-wallet.

    :attr:`current_balance` is a materialised view of the ledger history and
    is only ever written by the balance reconciler.
    """

    id: int
    user_id: str
    name: str
    icon: Optional[str]
    color: Optional[str]
    initial_balance: Decimal
    current_balance: Decimal
    is_active: bool
    display_order: int
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "icon": self.icon,
            "color": self.color,
            "initialBalance": _money(self.initial_balance),
            "currentBalance": _money(self.current_balance),
            "isActive": self.is_active,
            "displayOrder": self.display_order,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(slots=True)
class Category:
    id: int
    user_id: str
    name: str
    type: str
    icon: Optional[str]
    is_default: bool
    created_at: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "type": self.type,
            "icon": self.icon,
            "isDefault": self.is_default,
            "createdAt": _iso(self.created_at),
        }


@dataclass(slots=True)
class Transaction:
    """An income or expense entry on a single wallet.

    The direction lives on :attr:`type`; the category is optional and only
    classifies the entry, so deleting a category never moves a balance.
    """

    id: int
    user_id: str
    wallet_id: int
    category_id: Optional[int]
    type: str
    amount: Decimal
    description: Optional[str]
    notes: Optional[str]
    transaction_date: datetime
    created_at: datetime
    updated_at: datetime

    def signed_amount(self) -> Decimal:
        """Return the effect of the entry on its wallet balance."""

        return self.amount if self.type == INCOME else -self.amount

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "walletId": self.wallet_id,
            "categoryId": self.category_id,
            "type": self.type,
            "amount": _money(self.amount),
            "description": self.description,
            "notes": self.notes,
            "transactionDate": _iso(self.transaction_date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(slots=True)
class Transfer:
    """Money moved between two wallets of the same user.

    The sender is debited ``amount + fee``, the receiver credited ``amount``.
    """

    id: int
    user_id: str
    from_wallet_id: int
    to_wallet_id: int
    amount: Decimal
    fee: Decimal
    description: Optional[str]
    transfer_date: datetime
    created_at: datetime
    updated_at: datetime

    @property
    def total_debit(self) -> Decimal:
        return self.amount + self.fee

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "fromWalletId": self.from_wallet_id,
            "toWalletId": self.to_wallet_id,
            "amount": _money(self.amount),
            "fee": _money(self.fee),
            "description": self.description,
            "transferDate": _iso(self.transfer_date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(slots=True)
class BalanceDrift:
    """Difference between a cached wallet balance and its derived value."""

    wallet_id: int
    cached: Decimal
    derived: Decimal

    @property
    def delta(self) -> Decimal:
        return self.derived - self.cached

    def to_dict(self) -> dict[str, object]:
        return {
            "walletId": self.wallet_id,
            "cachedBalance": _money(self.cached),
            "derivedBalance": _money(self.derived),
            "delta": _money(self.delta),
        }


T = TypeVar("T")


@dataclass(slots=True)
class Page(Generic[T]):
    """One page of a listing plus what a client needs to fetch the others."""

    items: list[T]
    page: int
    limit: int
    total: int
    generated_at: datetime = field(default_factory=utcnow)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict[str, object]:
        return {
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "totalPages": self.total_pages,
            },
            "timestamp": _iso(self.generated_at),
        }


__all__ = [
    "CENT",
    "ZERO",
    "INCOME",
    "EXPENSE",
    "ENTRY_TYPES",
    "MAX_AMOUNT",
    "to_money",
    "parse_amount",
    "utcnow",
    "as_utc",
    "Wallet",
    "Category",
    "Transaction",
    "Transfer",
    "BalanceDrift",
    "Page",
]
