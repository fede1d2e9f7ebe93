"""
Pytest configuration and fixtures for the SimpleShop CRM API.
"""
from datetime import datetime, timezone

import pytest

from database import InMemoryDatabase, InMemoryRepository, StoreError
from schemas import CustomerIn, ProductIn
from services import CustomerService, ProductService, SalesService

FIXED_NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


class FailingRepository(InMemoryRepository):
    """Repository whose selected operations raise StoreError."""

    def __init__(self, name, fail_on=("get_all", "get_by_id", "create", "update", "delete"), records=None):
        super().__init__(name, records)
        self.fail_on = set(fail_on)

    def _maybe_fail(self, op):
        if op in self.fail_on:
            raise StoreError(f"{op} unavailable")

    def get_all(self):
        self._maybe_fail("get_all")
        return super().get_all()

    def get_by_id(self, record_id):
        self._maybe_fail("get_by_id")
        return super().get_by_id(record_id)

    def create(self, fields):
        self._maybe_fail("create")
        return super().create(fields)

    def update(self, record_id, fields):
        self._maybe_fail("update")
        return super().update(record_id, fields)

    def delete(self, record_id):
        self._maybe_fail("delete")
        return super().delete(record_id)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def customers(clock):
    return CustomerService(InMemoryRepository("customer"), clock=clock)


@pytest.fixture
def products(clock):
    return ProductService(InMemoryRepository("product"), clock=clock)


@pytest.fixture
def sales(products, customers, clock):
    return SalesService(InMemoryRepository("sale"), products, customers, clock=clock)


@pytest.fixture
def alice(customers):
    return customers.create(CustomerIn(name="Alice", email="alice@example.com", phone="555-0100"))


@pytest.fixture
def widget(products):
    return products.create(ProductIn(name="Widget", price=10, stock=5, low_stock_threshold=2))


@pytest.fixture
def client(monkeypatch):
    """
    Fixture for the FastAPI test client backed by a fresh in-memory store.
    """
    from fastapi.testclient import TestClient

    import main

    monkeypatch.setattr(main, "db", InMemoryDatabase())
    return TestClient(main.app)
