"""
Admin product table.

Holds the products shown in the admin stock console, resolves their
category names and runs the delete / publish actions for each row.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

import httpx
from pydantic import ValidationError

from api_client import ApiError, StorefrontClient
from notifications import Notifier
from schemas import ProductOut

logger = logging.getLogger(__name__)

CATEGORY_TIMEOUT = 5.0
UNKNOWN_CATEGORY = "Unknown Category"
LOADING = "Loading..."


def format_vnd(amount: float) -> str:
    return f"{int(round(amount)):,}".replace(",", ".") + " ₫"


def format_date(value: Union[datetime, str, None]) -> str:
    if not value:
        return "-"
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value.strftime("%d/%m/%Y")


class ProductTable:
    def __init__(
        self,
        products: Iterable[Union[ProductOut, dict]],
        client: StorefrontClient,
        notifier: Optional[Notifier] = None,
        on_product_deleted: Optional[Callable[[str], None]] = None,
        on_status_changed: Optional[Callable[[str, bool], None]] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        category_timeout: float = CATEGORY_TIMEOUT,
    ):
        self.products: List[ProductOut] = [
            p if isinstance(p, ProductOut) else ProductOut(**p) for p in products
        ]
        self.client = client
        self.notifier = notifier or Notifier()
        self.on_product_deleted = on_product_deleted
        self.on_status_changed = on_status_changed
        self.confirm = confirm or (lambda message: True)
        self.category_timeout = category_timeout

        self.category_names: Dict[str, str] = {}
        self.failed_categories: Set[str] = set()
        self.is_deleting = False
        self.selected_product_id: Optional[str] = None
        self.loading_status: Set[str] = set()

    # ---------- Categories ----------

    async def _fetch_category_name(self, category_id: str):
        try:
            category = await asyncio.wait_for(
                self.client.get_category_by_id(category_id), self.category_timeout
            )
            return category_id, category.name
        except (ApiError, httpx.HTTPError, asyncio.TimeoutError, ValidationError, ValueError) as e:
            logger.warning("Category %s could not be loaded: %r", category_id, e)
            self.failed_categories.add(category_id)
            return category_id, UNKNOWN_CATEGORY

    async def load_categories(self) -> Dict[str, str]:
        if not self.products:
            return self.category_names
        unique_ids = list(dict.fromkeys(p.category_ref for p in self.products))
        results = await asyncio.gather(*(self._fetch_category_name(c) for c in unique_ids))
        self.category_names = dict(results)
        return self.category_names

    def category_label(self, product: ProductOut) -> str:
        if product.category_ref in self.failed_categories:
            return UNKNOWN_CATEGORY
        return self.category_names.get(product.category_ref, LOADING)

    # ---------- Rows ----------

    def get(self, product_id: str) -> Optional[ProductOut]:
        return next((p for p in self.products if p.id == product_id), None)

    def row(self, product: ProductOut) -> dict:
        first_type = product.types[0] if product.types else None
        return {
            "id": product.id,
            "thumbnail_url": product.thumbnail_url,
            "name": product.name,
            "stock_total": product.stock_total,
            "display_price": format_vnd(product.display_price),
            "category": self.category_label(product),
            "color_names": ", ".join(t.color_name for t in product.types),
            "size_names": ", ".join(d.size_name for d in first_type.details) if first_type else "",
            "added_date": format_date(product.created_at),
            "is_published": product.is_published,
            "is_busy": (self.is_deleting and self.selected_product_id == product.id)
                       or product.id in self.loading_status,
        }

    def rows(self) -> List[dict]:
        return [self.row(p) for p in self.products]

    # ---------- Actions ----------

    async def delete(self, product_id: str) -> bool:
        if self.is_deleting:
            logger.debug("Delete of %s ignored, another delete is running", product_id)
            return False
        if not self.confirm("Are you sure you want to delete this product?"):
            return False
        try:
            self.is_deleting = True
            self.selected_product_id = product_id
            await self.client.remove_product(product_id)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Delete error for %s: %s", product_id, e)
            self.notifier.error("Failed to delete product")
            return False
        finally:
            self.is_deleting = False
            self.selected_product_id = None

        self.products = [p for p in self.products if p.id != product_id]
        self.notifier.success("Product deleted")
        if self.on_product_deleted:
            self.on_product_deleted(product_id)
        return True

    async def change_status(self, product_id: str, publish: bool) -> bool:
        if product_id in self.loading_status:
            logger.debug("Status change of %s ignored, a request is running", product_id)
            return False
        try:
            self.loading_status.add(product_id)
            if publish:
                await self.client.mark_product_continue(product_id)
            else:
                await self.client.mark_product_stop(product_id)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Status update error for %s: %s", product_id, e)
            self.notifier.error("Failed to update product status")
            return False
        finally:
            self.loading_status.discard(product_id)

        product = self.get(product_id)
        if product is not None:
            product.is_published = publish
        if self.on_status_changed:
            self.on_status_changed(product_id, publish)
        self.notifier.success("Product published" if publish else "Product paused")
        return True
