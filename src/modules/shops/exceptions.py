"""Shop domain exceptions."""

from __future__ import annotations

from shared.domain.errors import DomainError, ErrorKind, NotFound


class ShopNotFound(NotFound):
    def __init__(self, shop_id) -> None:
        super().__init__(f"Shop {shop_id} not found.", entity="shop", shop_id=str(shop_id))


class ShopUnavailable(DomainError):
    """The shop is inactive and cannot receive orders."""

    kind = ErrorKind.SHOP_UNAVAILABLE
