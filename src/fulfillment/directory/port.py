"""Directory port: read-only lookups of users and catalogue products.

Users and products are owned elsewhere; the fulfillment pipeline only looks
them up by id at checkout time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    name: str
    phone: str | None = None


@dataclass(frozen=True)
class ProductRecord:
    product_id: str
    shop_id: str
    name: str
    price: float
    is_available: bool = True


class Directory(ABC):
    @abstractmethod
    def get_user(self, user_id: str) -> UserRecord | None:
        """The persisted user record, or ``None`` if it has not synced yet."""
        ...

    @abstractmethod
    def get_products(self, product_ids: list[str]) -> dict[str, ProductRecord]:
        """Products keyed by id. Unknown or deleted ids are simply absent."""
        ...
