"""High-level application services orchestrating the ledger.

Every operation that can change a balance runs inside one repository atomic
unit together with the reconciliation of each wallet it touches.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from .database import SQLiteRepository
from .errors import InvalidOperation, NotFound, ValidationError
from .guards import OwnershipGuard
from .models import ENTRY_TYPES, BalanceDrift, Category, Page, Transaction, Wallet, parse_amount
from .reconciler import BalanceReconciler

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be less than {MAX_NAME_LENGTH} characters")
    return cleaned


def _check_entry_type(entry_type: str) -> str:
    if entry_type not in ENTRY_TYPES:
        raise ValidationError("Type must be either income or expense")
    return entry_type


def _check_page(page: int, limit: int) -> None:
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")


class WalletService:
    """Wallet lifecycle: creation, edits, ordering, soft and hard deletion."""

    def __init__(
        self,
        repository: SQLiteRepository,
        guard: OwnershipGuard,
        reconciler: BalanceReconciler,
    ) -> None:
        self._repository = repository
        self._guard = guard
        self._reconciler = reconciler

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_wallets(self, user_id: str, include_inactive: bool = False) -> list[Wallet]:
        return self._repository.list_wallets(user_id, include_inactive=include_inactive)

    def get_wallet(self, user_id: str, wallet_id: int) -> Wallet:
        return self._guard.require_wallet(wallet_id, user_id)

    def recompute_balance(self, user_id: str, wallet_id: int) -> Decimal:
        """Derive a wallet's balance without writing it."""

        with self._repository.atomic():
            self._guard.require_wallet(wallet_id, user_id)
            return self._reconciler.recompute_balance(wallet_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create_wallet(
        self,
        user_id: str,
        name: str,
        initial_balance: Decimal | int | str = 0,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        display_order: int = 0,
    ) -> Wallet:
        name = _clean_name(name)
        initial_balance = parse_amount(initial_balance, "Initial balance")
        if initial_balance < 0:
            raise ValidationError("Initial balance cannot be negative")
        if display_order < 0:
            raise ValidationError("Display order cannot be negative")

        with self._repository.atomic():
            self._guard.ensure_unique_wallet_name(user_id, name)
            return self._repository.insert_wallet(
                user_id=user_id,
                name=name,
                initial_balance=initial_balance,
                icon=icon,
                color=color,
                display_order=display_order,
            )

    def update_wallet(self, user_id: str, wallet_id: int, changes: dict[str, object]) -> Wallet:
        """Apply ``changes`` (name, icon, color, display_order, is_active) to a wallet.

        The initial balance is fixed at creation; the current balance is only
        ever written by the reconciler.
        """

        fields = {key: value for key, value in changes.items() if value is not None}
        with self._repository.atomic():
            wallet = self._guard.require_wallet(wallet_id, user_id)

            if "name" in fields:
                fields["name"] = _clean_name(str(fields["name"]))
            if "display_order" in fields and int(fields["display_order"]) < 0:
                raise ValidationError("Display order cannot be negative")

            becomes_active = bool(fields.get("is_active", wallet.is_active))
            name = str(fields.get("name", wallet.name))
            if becomes_active and (name != wallet.name or not wallet.is_active):
                self._guard.ensure_unique_wallet_name(user_id, name, exclude_id=wallet.id)

            if not fields:
                return wallet
            return self._repository.update_wallet(wallet.id, fields)

    def soft_delete_wallet(self, user_id: str, wallet_id: int) -> Wallet:
        """Deactivate a wallet. Its history, and every balance, stays untouched."""

        with self._repository.atomic():
            wallet = self._guard.require_wallet(wallet_id, user_id)
            return self._repository.update_wallet(wallet.id, {"is_active": False})

    def reorder_wallets(self, user_id: str, order: Iterable[tuple[int, int]]) -> list[Wallet]:
        """Set ``display_order`` for each ``(wallet_id, display_order)`` pair.

        All pairs are applied or none is: an unknown wallet id aborts the
        whole reorder.
        """

        order = list(order)
        with self._repository.atomic():
            for wallet_id, display_order in order:
                if display_order < 0:
                    raise ValidationError("Display order cannot be negative")
                self._guard.require_wallet(wallet_id, user_id)
                self._repository.set_wallet_display_order(wallet_id, display_order)
            return self._repository.list_wallets(user_id, include_inactive=True)

    def purge_wallet(self, user_id: str, wallet_id: int) -> set[int]:
        """Hard-delete an inactive wallet together with its ledger history.

        Transfers to and from the wallet disappear with it, so every
        counterpart wallet is reconciled in the same unit. Returns the ids of
        the reconciled counterparts.
        """

        with self._repository.atomic():
            wallet = self._guard.require_wallet(wallet_id, user_id)
            if wallet.is_active:
                raise InvalidOperation("Only inactive wallets can be purged")
            counterparts = self._repository.transfer_counterparts(wallet.id)
            self._repository.delete_wallet(wallet.id)
            self._reconciler.update_balances(counterparts)

        logger.info("Purged wallet %s of user %s; reconciled %s", wallet.id, user_id, sorted(counterparts))
        return counterparts

    def reconcile(self, user_id: str) -> list[BalanceDrift]:
        """Re-derive every balance of the user and report what had drifted."""

        return self._reconciler.repair(user_id)


class CategoryService:
    """User categories. System-seeded defaults are read-only."""

    def __init__(self, repository: SQLiteRepository, guard: OwnershipGuard) -> None:
        self._repository = repository
        self._guard = guard

    def list_categories(self, user_id: str, entry_type: Optional[str] = None) -> list[Category]:
        if entry_type is not None:
            _check_entry_type(entry_type)
        return self._repository.list_categories(user_id, entry_type)

    def create_category(self, user_id: str, name: str, entry_type: str, icon: Optional[str] = None) -> Category:
        name = _clean_name(name)
        _check_entry_type(entry_type)
        with self._repository.atomic():
            self._guard.ensure_unique_category_name(user_id, name, entry_type)
            return self._repository.insert_category(user_id, name, entry_type, icon=icon, is_default=False)

    def update_category(self, user_id: str, category_id: int, changes: dict[str, object]) -> Category:
        fields = {key: value for key, value in changes.items() if value is not None}
        with self._repository.atomic():
            category = self._guard.require_category(category_id, user_id)
            self._guard.ensure_mutable_category(category, "edit")
            if "name" in fields:
                fields["name"] = _clean_name(str(fields["name"]))
                self._guard.ensure_unique_category_name(user_id, fields["name"], category.type, exclude_id=category.id)
            if not fields:
                return category
            return self._repository.update_category(category.id, fields)

    def delete_category(self, user_id: str, category_id: int) -> Category:
        """Delete a user category. Its transactions stay, with no category."""

        with self._repository.atomic():
            category = self._guard.require_category(category_id, user_id)
            self._guard.ensure_mutable_category(category, "delete")
            self._repository.delete_category(category.id)
        return category


class TransactionService:
    """Income and expense entries, each write followed by reconciliation."""

    def __init__(
        self,
        repository: SQLiteRepository,
        guard: OwnershipGuard,
        reconciler: BalanceReconciler,
    ) -> None:
        self._repository = repository
        self._guard = guard
        self._reconciler = reconciler

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, user_id: str, transaction_id: int) -> Transaction:
        transaction = self._repository.get_transaction(transaction_id, user_id=user_id)
        if transaction is None:
            raise NotFound("Transaction not found")
        return transaction

    def list_transactions(
        self,
        user_id: str,
        wallet_id: Optional[int] = None,
        category_id: Optional[int] = None,
        entry_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Transaction]:
        _check_page(page, limit)
        if entry_type is not None:
            _check_entry_type(entry_type)
        filters = {
            "wallet_id": wallet_id,
            "category_id": category_id,
            "entry_type": entry_type,
            "start": start_date,
            "end": end_date,
        }
        with self._repository.atomic():
            items = self._repository.list_transactions(user_id, offset=(page - 1) * limit, limit=limit, **filters)
            total = self._repository.count_transactions(user_id, **filters)
        return Page(items=items, page=page, limit=limit, total=total)

    def recent(self, user_id: str, limit: int = 10) -> list[Transaction]:
        return self._repository.list_transactions(user_id, limit=limit)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(
        self,
        user_id: str,
        wallet_id: int,
        entry_type: str,
        amount: Decimal | int | str,
        transaction_date: datetime,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        _check_entry_type(entry_type)
        amount = self._check_amount(amount)

        with self._repository.atomic():
            self._guard.require_wallet(wallet_id, user_id)
            self._check_category(user_id, category_id, entry_type)
            transaction = self._repository.insert_transaction(
                user_id=user_id,
                wallet_id=wallet_id,
                entry_type=entry_type,
                amount=amount,
                transaction_date=transaction_date,
                category_id=category_id,
                description=description,
                notes=notes,
            )
            self._reconciler.update_balance(wallet_id)
        return transaction

    def update(self, user_id: str, transaction_id: int, changes: dict[str, object]) -> Transaction:
        """Apply ``changes`` to a transaction and reconcile old and new wallets.

        Keys absent from ``changes`` are left alone. ``category_id`` may be
        set to ``None`` explicitly to uncategorise the entry; other ``None``
        values are ignored.
        """

        fields = {key: value for key, value in changes.items() if value is not None or key == "category_id"}
        with self._repository.atomic():
            existing = self.get(user_id, transaction_id)

            if "type" in fields:
                _check_entry_type(str(fields["type"]))
            if "amount" in fields:
                fields["amount"] = self._check_amount(fields["amount"])
            new_wallet_id = int(fields.get("wallet_id", existing.wallet_id))
            if new_wallet_id != existing.wallet_id:
                if not self._guard.validate_wallet_ownership(new_wallet_id, user_id):
                    raise NotFound("New wallet not found")

            entry_type = str(fields.get("type", existing.type))
            category_id = fields["category_id"] if "category_id" in fields else existing.category_id
            if "type" in fields or "category_id" in fields:
                self._check_category(user_id, category_id, entry_type)

            updated = self._repository.update_transaction(existing.id, fields) if fields else existing
            self._reconciler.update_balances({existing.wallet_id, new_wallet_id})
        return updated

    def delete(self, user_id: str, transaction_id: int) -> Transaction:
        with self._repository.atomic():
            existing = self.get(user_id, transaction_id)
            self._repository.delete_transaction(existing.id)
            self._reconciler.update_balance(existing.wallet_id)
        return existing

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _check_amount(amount: object) -> Decimal:
        amount = parse_amount(amount)
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0")
        return amount

    def _check_category(self, user_id: str, category_id: Optional[int], entry_type: str) -> None:
        """A category, when present, must belong to the user and share the entry's type."""

        if category_id is None:
            return
        category = self._guard.require_category(int(category_id), user_id)
        if category.type != entry_type:
            raise ValidationError(f"Category '{category.name}' is for {category.type}, not {entry_type}")
