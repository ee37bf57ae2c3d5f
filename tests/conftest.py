"""Shared pytest fixtures for the test suite.

Fixture overview
----------------
mongo_db     — in-memory mongomock database wired into the API modules
api          — FastAPI TestClient bound to that database
seeded       — ids returned by POST /api/seed
make_product — builds ProductOut records for the console tests
"""

from __future__ import annotations

from datetime import datetime

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
from schemas import ProductOut


@pytest.fixture
def mongo_db(monkeypatch):
    test_db = mongomock.MongoClient()["storefront_test"]
    monkeypatch.setattr(database, "db", test_db)
    monkeypatch.setattr(main, "db", test_db)
    return test_db


@pytest.fixture
def api(mongo_db) -> TestClient:
    return TestClient(main.app)


@pytest.fixture
def seeded(api) -> dict:
    resp = api.post("/api/seed", json={"force": True})
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
def make_product():
    def _make(product_id: str, category_ref: str = "cat-1", published: bool = False, **extra) -> ProductOut:
        data = {
            "id": product_id,
            "name": f"Product {product_id}",
            "category_ref": category_ref,
            "is_published": published,
            "created_at": datetime(2024, 3, 9, 10, 30),
            "types": [
                {"color_name": "Red", "details": [
                    {"size_name": "S", "price": 150000, "in_storage": 3},
                    {"size_name": "M", "price": 160000, "in_storage": 4},
                ]},
                {"color_name": "Blue", "details": [
                    {"size_name": "L", "price": 170000, "in_storage": 5},
                ]},
            ],
        }
        data.update(extra)
        return ProductOut(**data)

    return _make
