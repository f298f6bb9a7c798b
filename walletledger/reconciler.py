"""Derive wallet balances from the ledger history.

``wallet.current_balance`` is a cache. The functions here recompute it from
first principles::

    initial_balance + income - expense + transfers_in - transfers_out - fees_out

and never take the cached value as an input, so a missed or failed update can
always be repaired by recomputing.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from .database import SQLiteRepository
from .errors import NotFound
from .models import EXPENSE, INCOME, BalanceDrift, to_money

logger = logging.getLogger(__name__)


class BalanceReconciler:
    """Recompute and persist wallet balances."""

    def __init__(self, repository: SQLiteRepository) -> None:
        self._repository = repository

    def recompute_balance(self, wallet_id: int) -> Decimal:
        """Return the authoritative balance of ``wallet_id``.

        Raises:
            NotFound: if no wallet has that id.
        """

        with self._repository.atomic():
            wallet = self._repository.get_wallet(wallet_id)
            if wallet is None:
                raise NotFound("Wallet not found")

            income = self._repository.sum_transactions(wallet_id, INCOME)
            expense = self._repository.sum_transactions(wallet_id, EXPENSE)
            transfers_in = self._repository.sum_transfers_in(wallet_id)
            transfers_out, fees_out = self._repository.sum_transfers_out(wallet_id)

        return to_money(wallet.initial_balance + income - expense + transfers_in - transfers_out - fees_out)

    def update_balance(self, wallet_id: int) -> Decimal:
        """Recompute the balance of ``wallet_id`` and store it on the wallet row.

        Joins the caller's atomic unit when there is one, so the row change
        that made the update necessary and the new balance commit together.
        """

        with self._repository.atomic():
            balance = self.recompute_balance(wallet_id)
            self._repository.set_wallet_balance(wallet_id, balance)
        return balance

    def update_balances(self, wallet_ids: set[int] | list[int]) -> dict[int, Decimal]:
        """Reconcile several wallets in one atomic unit."""

        with self._repository.atomic():
            return {wallet_id: self.update_balance(wallet_id) for wallet_id in sorted(set(wallet_ids))}

    # ------------------------------------------------------------------
    # Audit and repair
    # ------------------------------------------------------------------
    def audit(self, user_id: str) -> list[BalanceDrift]:
        """Report every wallet of ``user_id`` whose cached balance has drifted."""

        drifts: list[BalanceDrift] = []
        with self._repository.atomic():
            for wallet in self._repository.list_wallets(user_id, include_inactive=True):
                derived = self.recompute_balance(wallet.id)
                if derived != wallet.current_balance:
                    drifts.append(BalanceDrift(wallet.id, wallet.current_balance, derived))
        return drifts

    def repair(self, user_id: str) -> list[BalanceDrift]:
        """Rewrite every wallet balance of ``user_id``; return the drift that was fixed."""

        with self._repository.atomic():
            drifts = self.audit(user_id)
            for drift in drifts:
                self._repository.set_wallet_balance(drift.wallet_id, drift.derived)

        for drift in drifts:
            logger.warning(
                "Repaired wallet %s balance: cached %s, derived %s",
                drift.wallet_id,
                drift.cached,
                drift.derived,
            )
        return drifts
