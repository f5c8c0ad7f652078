"""Shop repositories package."""

from modules.shops.repositories.django_repository import ShopDjangoRepository
from modules.shops.repositories.interfaces import IShopRepository

__all__ = ["IShopRepository", "ShopDjangoRepository"]
