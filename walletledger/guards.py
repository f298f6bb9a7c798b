"""Authorization and integrity checks binding every entity to its owner.

Ownership failures are reported as :class:`~walletledger.errors.NotFound` so a
caller can never learn whether somebody else's wallet exists. Names are
compared after trimming and case-folding: ``"Food"`` and ``" food "`` collide.
"""
from __future__ import annotations

from typing import Optional

from .database import SQLiteRepository
from .errors import DuplicateEntry, NotFound, ValidationError
from .models import Category, Wallet


class OwnershipGuard:
    def __init__(self, repository: SQLiteRepository) -> None:
        self._repository = repository

    def validate_wallet_ownership(self, wallet_id: int, user_id: str) -> bool:
        """True iff ``user_id`` owns ``wallet_id``, active or not."""

        return self._repository.get_wallet(wallet_id, user_id=user_id) is not None

    def require_wallet(self, wallet_id: int, user_id: str, active_only: bool = False) -> Wallet:
        wallet = self._repository.get_wallet(wallet_id, user_id=user_id, active_only=active_only)
        if wallet is None:
            raise NotFound("Wallet not found")
        return wallet

    def require_category(self, category_id: int, user_id: str) -> Category:
        category = self._repository.get_category(category_id, user_id=user_id)
        if category is None:
            raise NotFound("Category not found")
        return category

    @staticmethod
    def ensure_mutable_category(category: Category, action: str = "edit") -> None:
        """Reject changes to system-seeded categories, whoever asks."""

        if category.is_default:
            raise ValidationError(f"Cannot {action} default categories")

    def ensure_unique_wallet_name(self, user_id: str, name: str, exclude_id: Optional[int] = None) -> None:
        if self._repository.find_wallet_by_name(user_id, name, exclude_id=exclude_id) is not None:
            raise DuplicateEntry("Wallet with this name already exists")

    def ensure_unique_category_name(
        self,
        user_id: str,
        name: str,
        entry_type: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        if self._repository.find_category_by_name(user_id, name, entry_type, exclude_id=exclude_id) is not None:
            raise DuplicateEntry("Category with this name already exists")
