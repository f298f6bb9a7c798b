"""Transfers between two wallets of the same user.

A transfer debits its source wallet by ``amount + fee`` and credits its
destination by ``amount``. The transfer row and both balance writes happen in
one atomic unit; balances are re-derived by the reconciler rather than
adjusted arithmetically, so a transfer can never leave a half-applied effect.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .database import SQLiteRepository
from .errors import InsufficientBalance, InvalidOperation, NotFound, ValidationError
from .models import Page, Transfer, parse_amount
from .reconciler import BalanceReconciler

logger = logging.getLogger(__name__)


class TransferEngine:
    """Create, delete and list transfers while keeping balances consistent."""

    def __init__(self, repository: SQLiteRepository, reconciler: BalanceReconciler) -> None:
        self._repository = repository
        self._reconciler = reconciler

    def create(
        self,
        user_id: str,
        from_wallet_id: int,
        to_wallet_id: int,
        amount: Decimal | int | str,
        transfer_date: datetime,
        fee: Decimal | int | str = 0,
        description: Optional[str] = None,
    ) -> Transfer:
        """Move ``amount`` from one wallet to another, charging ``fee`` to the sender.

        Rules are checked in order and the first violation is raised:
        same wallet, non-positive amount, negative fee, unknown or inactive
        source, unknown or inactive destination, insufficient source balance.
        """

        if from_wallet_id == to_wallet_id:
            raise InvalidOperation("Cannot transfer to the same wallet")

        amount = parse_amount(amount)
        fee = parse_amount(fee, "Fee")
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0")
        if fee < 0:
            raise ValidationError("Fee cannot be negative")

        with self._repository.atomic():
            source = self._repository.get_wallet(from_wallet_id, user_id=user_id, active_only=True)
            if source is None:
                raise NotFound("Source wallet not found or not active")
            destination = self._repository.get_wallet(to_wallet_id, user_id=user_id, active_only=True)
            if destination is None:
                raise NotFound("Destination wallet not found or not active")

            available = self._reconciler.recompute_balance(source.id)
            required = amount + fee
            if available < required:
                raise InsufficientBalance(available, required)

            transfer = self._repository.insert_transfer(
                user_id=user_id,
                from_wallet_id=source.id,
                to_wallet_id=destination.id,
                amount=amount,
                fee=fee,
                transfer_date=transfer_date,
                description=description,
            )
            self._reconciler.update_balances({source.id, destination.id})

        logger.info(
            "Transfer %s: %s from wallet %s to wallet %s (fee %s)",
            transfer.id,
            amount,
            source.id,
            destination.id,
            fee,
        )
        return transfer

    def get(self, user_id: str, transfer_id: int) -> Transfer:
        transfer = self._repository.get_transfer(transfer_id, user_id=user_id)
        if transfer is None:
            raise NotFound("Transfer not found")
        return transfer

    def delete(self, user_id: str, transfer_id: int) -> Transfer:
        """Remove a transfer and reverse its effect on both wallets.

        No solvency check applies: the destination may go negative if the
        money has been spent since.
        """

        with self._repository.atomic():
            transfer = self.get(user_id, transfer_id)
            self._repository.delete_transfer(transfer.id)
            self._reconciler.update_balances({transfer.from_wallet_id, transfer.to_wallet_id})

        logger.info("Transfer %s deleted and balances rolled back", transfer.id)
        return transfer

    def list_transfers(
        self,
        user_id: str,
        wallet_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Transfer]:
        """List the user's transfers, newest first; ``wallet_id`` matches either side."""

        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        with self._repository.atomic():
            items = self._repository.list_transfers(
                user_id,
                wallet_id=wallet_id,
                start=start_date,
                end=end_date,
                offset=(page - 1) * limit,
                limit=limit,
            )
            total = self._repository.count_transfers(user_id, wallet_id=wallet_id, start=start_date, end=end_date)
        return Page(items=items, page=page, limit=limit, total=total)
