"""
Catalog repository (Supabase persistence).

Read access to the `products` and `users` tables the auction engine joins
against, plus inserts used by the demo seeding script.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from supabase import Client  # type: ignore[import-not-found]

from domain.catalog import Product, User
from domain.money import to_money
from repositories.auction_repository import execute_query

_PRODUCTS_TABLE: str = "products"
_USERS_TABLE: str = "users"

# Never select password hashes or other account columns.
_USER_COLUMNS: str = "id,username,name,email,role"


def _row_to_product(row: Mapping[str, Any]) -> Product:
    return Product(
        product_id=int(row["id"]),
        name=str(row["name"]),
        description=str(row.get("description") or ""),
        price=to_money(str(row["price"])),
        images=tuple(row.get("images") or ()),
    )


def _row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        user_id=int(row["id"]),
        username=str(row["username"]),
        name=str(row["name"]),
        email=row.get("email"),
        role=str(row.get("role") or "buyer"),
    )


class SupabaseCatalogRepository:
    """CatalogRepository backed by the `products` and `users` tables."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def get_product(self, product_id: int) -> Optional[Product]:
        rows = execute_query(
            self._client.table(_PRODUCTS_TABLE).select("*").eq("id", product_id).limit(1),
            "get product",
        )
        return _row_to_product(rows[0]) if rows else None

    def get_user(self, user_id: int) -> Optional[User]:
        rows = execute_query(
            self._client.table(_USERS_TABLE).select(_USER_COLUMNS).eq("id", user_id).limit(1),
            "get user",
        )
        return _row_to_user(rows[0]) if rows else None

    def create_product(
        self,
        name: str,
        description: str,
        price: Decimal,
        images: Sequence[str] = (),
    ) -> Product:
        payload: dict[str, Any] = {
            "name": name,
            "description": description,
            "price": str(to_money(price)),
            "images": list(images),
        }
        rows = execute_query(self._client.table(_PRODUCTS_TABLE).insert(payload), "create product")
        if not rows:
            raise RuntimeError("Failed to create product: no row returned")
        return _row_to_product(rows[0])

    def create_user(
        self,
        username: str,
        name: str,
        email: Optional[str] = None,
        role: str = "buyer",
    ) -> User:
        payload: dict[str, Any] = {
            "username": username,
            "name": name,
            "email": email,
            "role": role,
        }
        rows = execute_query(self._client.table(_USERS_TABLE).insert(payload), "create user")
        if not rows:
            raise RuntimeError("Failed to create user: no row returned")
        return _row_to_user(rows[0])


__all__ = ["SupabaseCatalogRepository"]
