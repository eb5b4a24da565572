"""
Domain: Catalog collaborators (products and users).

The auction engine references these entities but never mutates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class Product:
    """Product offered through an auction. Supplies display data only."""

    product_id: int
    name: str
    description: str
    price: Decimal
    images: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class UserSummary:
    """The public projection of a user shown next to a bid."""

    user_id: int
    name: str


@dataclass(frozen=True, slots=True)
class User:
    """Marketplace account (buyer, supplier or admin)."""

    user_id: int
    username: str
    name: str
    email: Optional[str] = None
    role: str = "buyer"  # buyer, supplier, admin

    def summary(self) -> UserSummary:
        return UserSummary(user_id=self.user_id, name=self.name)
