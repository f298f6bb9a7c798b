"""Request bodies accepted by the HTTP API.

Fields are exposed in camelCase on the wire and snake_case in Python. Only the
shape is checked here; ledger rules (positive amounts, ownership, solvency)
are enforced by the services so they apply to every caller.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EntryType = Literal["income", "expense"]


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WalletCreate(RequestModel):
    name: str = Field(min_length=1, max_length=50)
    icon: Optional[str] = None
    color: Optional[str] = None
    initial_balance: Decimal = Field(default=Decimal("0"), ge=0)
    display_order: int = Field(default=0, ge=0)


class WalletUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    icon: Optional[str] = None
    color: Optional[str] = None
    display_order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class WalletOrder(RequestModel):
    id: int
    display_order: int = Field(ge=0)


class WalletReorder(RequestModel):
    wallets: list[WalletOrder]


class CategoryCreate(RequestModel):
    name: str = Field(min_length=1, max_length=50)
    type: EntryType
    icon: Optional[str] = None


class CategoryUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    icon: Optional[str] = None


class TransactionCreate(RequestModel):
    wallet_id: int = Field(gt=0)
    category_id: Optional[int] = Field(default=None, gt=0)
    type: EntryType
    amount: Decimal = Field(gt=0)
    description: Optional[str] = None
    notes: Optional[str] = None
    transaction_date: datetime


class TransactionUpdate(RequestModel):
    wallet_id: Optional[int] = Field(default=None, gt=0)
    category_id: Optional[int] = Field(default=None, gt=0)
    type: Optional[EntryType] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    description: Optional[str] = None
    notes: Optional[str] = None
    transaction_date: Optional[datetime] = None


class TransferCreate(RequestModel):
    # amount and fee are range-checked by the transfer engine, after the
    # same-wallet rule.
    from_wallet_id: int = Field(gt=0)
    to_wallet_id: int = Field(gt=0)
    amount: Decimal
    fee: Decimal = Decimal("0")
    description: Optional[str] = None
    transfer_date: datetime


class DevTokenRequest(RequestModel):
    uid: str = Field(min_length=1, max_length=128)
    email: Optional[str] = None
    name: Optional[str] = None
