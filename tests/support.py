# tests/support.py
import tempfile
import unittest
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from walletledger.database import SQLiteRepository
from walletledger.guards import OwnershipGuard
from walletledger.reconciler import BalanceReconciler
from walletledger.services import CategoryService, TransactionService, WalletService
from walletledger.statistics import StatisticsService
from walletledger.transfers import TransferEngine

USER = "uid-alice"
OTHER_USER = "uid-bob"


def at(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class LedgerTestCase(unittest.TestCase):
    """Wires every service against a throwaway SQLite file."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repository = SQLiteRepository(Path(self._tmp.name) / "ledger.db")
        self.repository.initialise_schema()
        self.guard = OwnershipGuard(self.repository)
        self.reconciler = BalanceReconciler(self.repository)
        self.wallets = WalletService(self.repository, self.guard, self.reconciler)
        self.categories = CategoryService(self.repository, self.guard)
        self.transactions = TransactionService(self.repository, self.guard, self.reconciler)
        self.transfers = TransferEngine(self.repository, self.reconciler)
        self.statistics = StatisticsService(self.repository)

    def tearDown(self):
        self.repository.close()
        self._tmp.cleanup()

    def make_wallet(self, name="Cash", initial_balance=0, user_id=USER):
        return self.wallets.create_wallet(user_id, name, initial_balance=Decimal(str(initial_balance)))

    def make_category(self, name, entry_type, user_id=USER):
        return self.categories.create_category(user_id, name, entry_type)

    def balance(self, wallet_id):
        return self.repository.get_wallet(wallet_id).current_balance

    def assertConsistent(self, *wallet_ids):
        for wallet_id in wallet_ids:
            self.assertEqual(
                self.balance(wallet_id),
                self.reconciler.recompute_balance(wallet_id),
                f"wallet {wallet_id} cached balance drifted from its ledger",
            )
