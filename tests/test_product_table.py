"""
Unit tests for the admin product table.
"""

from __future__ import annotations

import asyncio

import httpx

from api_client import ApiError, StorefrontClient
from notifications import ERROR, SUCCESS
from product_table import LOADING, UNKNOWN_CATEGORY, ProductTable, format_date, format_vnd
from schemas import CategoryOut


class FakeClient:
    """Stand-in for StorefrontClient that records calls."""

    def __init__(self, categories=None, slow=(), broken=(), fail_actions=False):
        self.categories = categories or {}
        self.slow = set(slow)
        self.broken = set(broken)
        self.fail_actions = fail_actions
        self.category_calls = []
        self.calls = []
        self.gate = None
        self.gates = {}

    async def get_category_by_id(self, category_id):
        self.category_calls.append(category_id)
        if category_id in self.slow:
            await asyncio.sleep(1)
        if category_id in self.broken:
            raise httpx.ConnectError("connection refused")
        if category_id not in self.categories:
            raise ApiError(404, "Category not found")
        return CategoryOut(id=category_id, name=self.categories[category_id], slug=category_id)

    async def _action(self, name, product_id):
        self.calls.append((name, product_id))
        if self.gate is not None:
            await self.gate.wait()
        if product_id in self.gates:
            await self.gates[product_id].wait()
        if self.fail_actions:
            raise ApiError(500, "boom")
        return {"id": product_id}

    async def remove_product(self, product_id):
        return await self._action("remove", product_id)

    async def mark_product_continue(self, product_id):
        return await self._action("continue", product_id)

    async def mark_product_stop(self, product_id):
        return await self._action("stop", product_id)


class TestFormatting:
    def test_format_vnd(self) -> None:
        assert format_vnd(1250000) == "1.250.000 ₫"
        assert format_vnd(0) == "0 ₫"

    def test_format_date(self) -> None:
        assert format_date(None) == "-"
        assert format_date("2024-03-09T10:30:00Z") == "09/03/2024"


class TestRows:
    def test_row_values(self, make_product) -> None:
        table = ProductTable([make_product("p1")], FakeClient())
        row = table.rows()[0]
        assert row["stock_total"] == 12
        assert row["display_price"] == "150.000 ₫"
        assert row["color_names"] == "Red, Blue"
        assert row["size_names"] == "S, M"
        assert row["added_date"] == "09/03/2024"
        assert row["category"] == LOADING

    def test_product_without_types(self, make_product) -> None:
        table = ProductTable([make_product("p1", types=[])], FakeClient())
        row = table.rows()[0]
        assert row["stock_total"] == 0
        assert row["display_price"] == "0 ₫"
        assert row["size_names"] == ""


class TestLoadCategories:
    def test_unique_ids_fetched_once(self, make_product) -> None:
        client = FakeClient(categories={"c1": "Shirts", "c2": "Shoes"})
        products = [make_product("p1", "c1"), make_product("p2", "c2"), make_product("p3", "c1")]
        table = ProductTable(products, client)

        names = asyncio.run(table.load_categories())

        assert names == {"c1": "Shirts", "c2": "Shoes"}
        assert client.category_calls == ["c1", "c2"]
        assert [r["category"] for r in table.rows()] == ["Shirts", "Shoes", "Shirts"]

    def test_failures_and_timeouts_marked(self, make_product) -> None:
        client = FakeClient(categories={"ok": "Shirts", "slow": "Never"}, slow={"slow"}, broken={"down"})
        products = [make_product(str(i), cat) for i, cat in enumerate(["ok", "slow", "down", "missing"])]
        table = ProductTable(products, client, category_timeout=0.05)

        asyncio.run(table.load_categories())

        assert table.category_names["ok"] == "Shirts"
        assert table.failed_categories == {"slow", "down", "missing"}
        for cat in ("slow", "down", "missing"):
            assert table.category_names[cat] == UNKNOWN_CATEGORY
        assert [r["category"] for r in table.rows()] == ["Shirts"] + [UNKNOWN_CATEGORY] * 3

    def test_empty_products_skip_fetch(self) -> None:
        client = FakeClient()
        table = ProductTable([], client)
        assert asyncio.run(table.load_categories()) == {}
        assert client.category_calls == []


class TestDelete:
    def test_success(self, make_product) -> None:
        deleted = []
        client = FakeClient()
        table = ProductTable([make_product("p1"), make_product("p2")], client,
                             on_product_deleted=deleted.append)

        assert asyncio.run(table.delete("p1")) is True
        assert [p.id for p in table.products] == ["p2"]
        assert deleted == ["p1"]
        assert table.notifier.last.level == SUCCESS
        assert table.is_deleting is False
        assert table.selected_product_id is None

    def test_declined_confirm(self, make_product) -> None:
        client = FakeClient()
        table = ProductTable([make_product("p1")], client, confirm=lambda message: False)
        assert asyncio.run(table.delete("p1")) is False
        assert client.calls == []

    def test_failure_notifies_and_resets(self, make_product) -> None:
        table = ProductTable([make_product("p1")], FakeClient(fail_actions=True))
        assert asyncio.run(table.delete("p1")) is False
        assert len(table.products) == 1
        assert table.notifier.last.level == ERROR
        assert table.is_deleting is False

    def test_second_delete_ignored_while_in_flight(self, make_product) -> None:
        client = FakeClient()
        table = ProductTable([make_product("p1"), make_product("p2")], client)

        async def scenario():
            client.gate = asyncio.Event()
            first = asyncio.create_task(table.delete("p1"))
            await asyncio.sleep(0)
            assert table.is_deleting is True
            assert table.selected_product_id == "p1"
            assert table.rows()[0]["is_busy"] is True
            second = await table.delete("p2")
            client.gate.set()
            return await first, second

        first, second = asyncio.run(scenario())
        assert (first, second) == (True, False)
        assert client.calls == [("remove", "p1")]


class TestChangeStatus:
    def test_publish(self, make_product) -> None:
        changes = []
        client = FakeClient()
        table = ProductTable([make_product("p1")], client,
                             on_status_changed=lambda pid, status: changes.append((pid, status)))

        assert asyncio.run(table.change_status("p1", True)) is True
        assert client.calls == [("continue", "p1")]
        assert table.get("p1").is_published is True
        assert changes == [("p1", True)]
        assert table.loading_status == set()
        assert table.notifier.last.message == "Product published"

    def test_unpublish_failure(self, make_product) -> None:
        table = ProductTable([make_product("p1", published=True)], FakeClient(fail_actions=True))
        assert asyncio.run(table.change_status("p1", False)) is False
        assert table.get("p1").is_published is True
        assert table.loading_status == set()
        assert table.notifier.last.level == ERROR

    def test_double_toggle_ignored_while_in_flight(self, make_product) -> None:
        client = FakeClient()
        table = ProductTable([make_product("p1")], client)

        async def scenario():
            client.gate = asyncio.Event()
            first = asyncio.create_task(table.change_status("p1", True))
            await asyncio.sleep(0)
            assert table.loading_status == {"p1"}
            second = await table.change_status("p1", True)
            client.gate.set()
            return await first, second

        assert asyncio.run(scenario()) == (True, False)
        assert client.calls == [("continue", "p1")]

    def test_guard_is_per_product(self, make_product) -> None:
        client = FakeClient()
        table = ProductTable([make_product("a"), make_product("b")], client)

        async def scenario():
            client.gates = {"a": asyncio.Event(), "b": asyncio.Event()}
            first_a = asyncio.create_task(table.change_status("a", True))
            first_b = asyncio.create_task(table.change_status("b", True))
            await asyncio.sleep(0)
            assert table.loading_status == {"a", "b"}
            client.gates["a"].set()
            assert await first_a is True
            assert table.loading_status == {"b"}
            assert table.rows()[1]["is_busy"] is True
            repeat_b = await table.change_status("b", True)
            client.gates["b"].set()
            return await first_b, repeat_b

        assert asyncio.run(scenario()) == (True, False)
        assert client.calls.count(("continue", "b")) == 1
        assert table.loading_status == set()


class TestMalformedCategoryResponse:
    def test_bad_body_marks_only_that_category(self, make_product) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/bad"):
                return httpx.Response(200, json={"id": "bad"})
            if request.url.path.endswith("/garbled"):
                return httpx.Response(200, text="<html>oops</html>")
            return httpx.Response(200, json={"id": "ok", "name": "Shirts", "slug": "shirts"})

        products = [make_product("p1", "ok"), make_product("p2", "bad"), make_product("p3", "garbled")]

        async def scenario():
            async with StorefrontClient(base_url="http://api", transport=httpx.MockTransport(handler)) as client:
                table = ProductTable(products, client)
                await table.load_categories()
                return table

        table = asyncio.run(scenario())
        assert table.category_names == {"ok": "Shirts", "bad": UNKNOWN_CATEGORY, "garbled": UNKNOWN_CATEGORY}
        assert table.failed_categories == {"bad", "garbled"}
