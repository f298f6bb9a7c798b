"""Default data every new user starts with."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .database import SQLiteRepository
from .models import EXPENSE, INCOME, ZERO, Wallet

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: dict[str, list[tuple[str, str]]] = {
    INCOME: [
        ("Salary", "💰"),
        ("Bonus", "🎁"),
        ("Investment", "📈"),
        ("Business", "💼"),
        ("Freelance", "💻"),
        ("Gift", "🎉"),
        ("Other", "➕"),
    ],
    EXPENSE: [
        ("Food & Drinks", "🍔"),
        ("Transport", "🚗"),
        ("Shopping", "🛒"),
        ("Entertainment", "🎬"),
        ("Health", "🏥"),
        ("Education", "📚"),
        ("Bills", "📄"),
        ("Household", "🏠"),
        ("Clothing", "👕"),
        ("Beauty", "💄"),
        ("Sports", "⚽"),
        ("Gifts & Donations", "🎁"),
        ("Other", "➕"),
    ],
}

DEFAULT_WALLET_NAME = "Main Wallet"
DEFAULT_WALLET_COLOR = "#3b82f6"


@dataclass(slots=True)
class SetupResult:
    created: bool
    categories_count: int = 0
    default_wallet: Optional[Wallet] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "created": self.created,
            "categoriesCount": self.categories_count,
            "defaultWallet": self.default_wallet.to_dict() if self.default_wallet else None,
        }


def setup_new_user(repository: SQLiteRepository, user_id: str) -> SetupResult:
    """Seed default categories and a default wallet for ``user_id``.

    Users that already own a wallet or a category are left untouched, so the
    call is safe to repeat on every request.
    """

    with repository.atomic():
        if repository.user_has_ledger(user_id):
            return SetupResult(created=False)

        rows = [
            (name, entry_type, icon)
            for entry_type, categories in DEFAULT_CATEGORIES.items()
            for name, icon in categories
        ]
        count = repository.insert_categories(user_id, rows, is_default=True)
        wallet = repository.insert_wallet(
            user_id=user_id,
            name=DEFAULT_WALLET_NAME,
            initial_balance=ZERO,
            color=DEFAULT_WALLET_COLOR,
            display_order=0,
        )

    logger.info("Created %s default categories and wallet %s for user %s", count, wallet.id, user_id)
    return SetupResult(created=True, categories_count=count, default_wallet=wallet)
