"""
Async client for the storefront REST API.

Shared by the admin product console and the shop cart. Every call returns
the decoded JSON body; non-2xx answers raise ApiError so callers can decide
how to surface the failure.
"""
import logging
import os
from typing import Any, List, Optional

import httpx

from schemas import CartDetail, CartItem, CategoryOut, ProductOut, UserDetails

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.getenv("STOREFRONT_API_URL", "http://localhost:8000")


class ApiError(Exception):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class StorefrontClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._http.request(method, url, **kwargs)
        if response.is_error:
            try:
                body = response.json()
                detail = body.get("detail") if isinstance(body, dict) else body
            except ValueError:
                detail = response.text
            logger.debug("%s %s failed with %s", method, url, response.status_code)
            raise ApiError(response.status_code, detail)
        return response.json()

    # ---------- Users ----------

    async def get_user(self, user_id: str) -> Optional[UserDetails]:
        data = await self._request("GET", f"/api/user/{user_id}")
        return UserDetails(**data) if data else None

    # ---------- Catalog ----------

    async def get_categories(self) -> List[CategoryOut]:
        return [CategoryOut(**c) for c in await self._request("GET", "/api/categories")]

    async def get_category_by_id(self, category_id: str) -> CategoryOut:
        return CategoryOut(**await self._request("GET", f"/api/categories/{category_id}"))

    async def get_products(self, **filters) -> List[ProductOut]:
        params = {k: v for k, v in filters.items() if v is not None}
        return [ProductOut(**p) for p in await self._request("GET", "/api/products", params=params)]

    async def remove_product(self, product_id: str) -> dict:
        return await self._request("DELETE", f"/api/products/{product_id}")

    async def mark_product_continue(self, product_id: str) -> dict:
        return await self._request("PUT", f"/api/products/{product_id}/continue")

    async def mark_product_stop(self, product_id: str) -> dict:
        return await self._request("PUT", f"/api/products/{product_id}/stop")

    # ---------- Cart ----------

    async def get_cart_detail(self, session_id: str) -> CartDetail:
        data = await self._request("GET", "/api/cart", params={"session_id": session_id})
        return CartDetail(**data)

    async def add_cart_item(self, session_id: str, shop_ref: str, shop_name: str, item: CartItem) -> CartDetail:
        payload = {"session_id": session_id, "shop_ref": shop_ref, "shop_name": shop_name,
                   "item": item.model_dump()}
        return CartDetail(**await self._request("POST", "/api/cart/add", json=payload))

    async def remove_cart_item(self, session_id: str, shop_ref: str, product_ref: str,
                               color_name: Optional[str] = None, size_name: Optional[str] = None) -> CartDetail:
        payload = {"session_id": session_id, "shop_ref": shop_ref, "product_ref": product_ref,
                   "color_name": color_name, "size_name": size_name}
        return CartDetail(**await self._request("POST", "/api/cart/remove", json=payload))

    async def toggle_selected_of_cart_shop(self, session_id: str, shop_ref: str, selected: bool) -> CartDetail:
        payload = {"session_id": session_id, "shop_ref": shop_ref, "selected": selected}
        return CartDetail(**await self._request("PUT", "/api/cart/shop-selected", json=payload))
