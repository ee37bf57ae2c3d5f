"""
Shop cart state.

CartStore is the cart shared across the shop (fetched from the API and
updated by shop-selection toggles). CartPage keeps its own copy of the
store cart and builds the per-shop view of it.
"""
import logging
from typing import List, Optional

import httpx

from api_client import ApiError, StorefrontClient
from notifications import Notifier
from schemas import CartDetail, CartShop

logger = logging.getLogger(__name__)


class CartStore:
    def __init__(self, client: StorefrontClient, session_id: str, notifier: Optional[Notifier] = None):
        self.client = client
        self.session_id = session_id
        self.notifier = notifier or Notifier()
        self.cart_detail: Optional[CartDetail] = None

    async def fetch_cart_detail(self) -> Optional[CartDetail]:
        try:
            self.cart_detail = await self.client.get_cart_detail(self.session_id)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Cart fetch failed for %s: %s", self.session_id, e)
            self.notifier.error("Could not load your cart")
        return self.cart_detail

    async def toggle_selected_of_cart_shop(self, shop_ref: str, selected: bool) -> bool:
        if self.cart_detail is None:
            return False
        previous = self.cart_detail
        optimistic = previous.model_copy(deep=True)
        for shop in optimistic.shop_groups:
            if shop.shop_ref == shop_ref:
                shop.selected = selected
        self.cart_detail = CartDetail.from_cart(optimistic, optimistic.id)

        try:
            self.cart_detail = await self.client.toggle_selected_of_cart_shop(
                self.session_id, shop_ref, selected
            )
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Shop selection update failed for %s: %s", shop_ref, e)
            self.cart_detail = previous
            self.notifier.error("Could not update shop selection")
            return False
        return True


class CartPage:
    def __init__(self, store: CartStore):
        self.store = store
        self.local_cart_detail: Optional[CartDetail] = None

    def sync(self) -> None:
        if self.store.cart_detail is not None:
            self.local_cart_detail = self.store.cart_detail

    async def load(self) -> Optional[CartDetail]:
        if self.store.cart_detail is None:
            await self.store.fetch_cart_detail()
        self.sync()
        return self.local_cart_detail

    async def on_selected_change(self, shop_ref: str) -> bool:
        shop = self._shop(shop_ref)
        if shop is None:
            return False
        ok = await self.store.toggle_selected_of_cart_shop(shop_ref, not shop.selected)
        self.sync()
        return ok

    def _shop(self, shop_ref: str) -> Optional[CartShop]:
        if self.local_cart_detail is None:
            return None
        return next((s for s in self.local_cart_detail.shop_groups if s.shop_ref == shop_ref), None)

    def shop_views(self) -> List[dict]:
        if self.local_cart_detail is None:
            return []
        return [
            {
                "shop_ref": shop.shop_ref,
                "shop_name": shop.shop_name,
                "selected": shop.selected,
                "item_list": shop.item_list,
                "quantity": shop.quantity,
                "subtotal": shop.subtotal,
            }
            for shop in self.local_cart_detail.shop_groups
        ]

    @property
    def total_quantity(self) -> int:
        return self.local_cart_detail.total_quantity if self.local_cart_detail else 0

    @property
    def selected_total(self) -> float:
        return self.local_cart_detail.selected_total if self.local_cart_detail else 0.0
