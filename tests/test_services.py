"""
Tests for the customer and product services.
"""
import pytest

from database import InMemoryRepository, NotFoundError, StoreError
from schemas import CustomerIn, Product, ProductIn
from services import CustomerService, ProductService, stock_status
from tests.conftest import FIXED_NOW, FailingRepository


class TestCustomerService:

    def test_create_starts_total_at_zero(self, customers):
        customer = customers.create(CustomerIn(name="Bob", email="bob@example.com"))
        assert customer.id == 1
        assert customer.total_purchases == 0
        assert customer.created_at == FIXED_NOW.isoformat()

    def test_create_ids_increase(self, customers):
        ids = [customers.create(CustomerIn(name=f"c{i}")).id for i in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_update_keeps_total_purchases(self, customers, alice):
        customers.update_total_purchases(alice.id, 50)
        updated = customers.update(alice.id, CustomerIn(name="Alice B", email="ab@example.com"))
        assert updated.name == "Alice B"
        assert updated.total_purchases == 50

    def test_update_missing_customer(self, customers):
        with pytest.raises(NotFoundError, match="Customer not found"):
            customers.update(99, CustomerIn(name="Nobody"))

    def test_delete(self, customers, alice):
        assert customers.delete(alice.id) is True
        assert customers.get_all() == []

    def test_delete_missing_customer_leaves_collection(self, customers, alice):
        with pytest.raises(NotFoundError):
            customers.delete(99)
        assert [c.id for c in customers.get_all()] == [alice.id]

    def test_update_total_purchases_accumulates(self, customers, alice):
        customers.update_total_purchases(alice.id, 20)
        customers.update_total_purchases(str(alice.id), 5.5)
        assert customers.get_by_id(alice.id).total_purchases == 25.5

    def test_update_total_purchases_swallows_missing_customer(self, customers):
        customers.update_total_purchases(99, 10)

    def test_search(self, customers, alice):
        customers.create(CustomerIn(name="Bob", email="bob@shop.test", phone="555-0199"))
        assert [c.name for c in customers.search("ALICE")] == ["Alice"]
        assert [c.name for c in customers.search("shop.test")] == ["Bob"]
        assert [c.name for c in customers.search("0199")] == ["Bob"]
        assert len(customers.search("")) == 2

    def test_read_failure_returns_empty_list(self):
        service = CustomerService(FailingRepository("customer", fail_on=["get_all"]))
        assert service.get_all() == []

    def test_get_by_id_failure_is_not_found(self):
        repo = FailingRepository("customer", fail_on=["get_by_id"], records=[{"Id": 1, "name": "a"}])
        with pytest.raises(NotFoundError):
            CustomerService(repo).get_by_id(1)

    def test_write_failure_propagates(self):
        service = CustomerService(FailingRepository("customer", fail_on=["create"]))
        with pytest.raises(StoreError):
            service.create(CustomerIn(name="x"))


class TestProductService:

    def test_create_and_get(self, products, widget):
        product = products.get_by_id(widget.id)
        assert product.name == "Widget"
        assert product.price == 10
        assert product.stock == 5
        assert product.low_stock_threshold == 2

    def test_get_missing_product(self, products):
        with pytest.raises(NotFoundError, match="Product not found"):
            products.get_by_id(1)

    def test_update(self, products, widget):
        updated = products.update(widget.id, ProductIn(name="Widget XL", price=12.5, stock=9, low_stock_threshold=3))
        assert updated.name == "Widget XL"
        assert updated.stock == 9
        assert updated.created_at == widget.created_at

    @pytest.mark.parametrize("quantity,expected", [(0, 5), (2, 3), (5, 0), (6, 0), (100, 0)])
    def test_update_stock_never_negative(self, products, widget, quantity, expected):
        assert products.update_stock(widget.id, quantity).stock == expected
        assert products.get_by_id(widget.id).stock == expected

    def test_update_stock_missing_product(self, products):
        with pytest.raises(NotFoundError):
            products.update_stock(3, 1)

    def test_update_stock_write_failure_propagates(self):
        repo = FailingRepository("product", fail_on=["update"], records=[{"Id": 1, "name": "a", "price": 1, "stock": 4}])
        with pytest.raises(StoreError):
            ProductService(repo).update_stock(1, 1)

    def test_low_stock_products_inclusive(self, products):
        rows = [("plenty", 10, 2), ("at threshold", 2, 2), ("below", 1, 2), ("empty", 0, 0), ("zero threshold", 1, 0)]
        for name, stock, threshold in rows:
            products.create(ProductIn(name=name, price=1, stock=stock, low_stock_threshold=threshold))
        low = {p.name for p in products.get_low_stock_products()}
        assert low == {"at threshold", "below", "empty"}

    def test_low_stock_read_failure_returns_empty(self):
        service = ProductService(FailingRepository("product", fail_on=["get_all"]))
        assert service.get_low_stock_products() == []

    def test_search(self, products, widget):
        products.create(ProductIn(name="Gadget", price=3))
        assert [p.name for p in products.search("widg")] == ["Widget"]
        assert len(products.search(None)) == 2

    def test_delete_missing_product_leaves_collection(self, products, widget):
        with pytest.raises(NotFoundError):
            products.delete(widget.id + 1)
        assert len(products.get_all()) == 1


@pytest.mark.parametrize("stock,threshold,status", [
    (0, 5, "Out of Stock"),
    (3, 5, "Low Stock"),
    (5, 5, "Low Stock"),
    (6, 5, "In Stock"),
])
def test_stock_status(stock, threshold, status):
    product = Product(id=1, name="p", price=1, stock=stock, low_stock_threshold=threshold,
                      created_at=FIXED_NOW.isoformat())
    assert stock_status(product) == status


def test_missing_created_at_uses_service_clock(clock):
    customers = CustomerService(InMemoryRepository("customer", records=[{"Id": 1, "name": "legacy"}]), clock=clock)
    products = ProductService(InMemoryRepository("product", records=[{"Id": 1, "name": "old", "price": 2}]), clock=clock)
    assert customers.get_by_id(1).created_at == FIXED_NOW.isoformat()
    assert products.get_all()[0].created_at == FIXED_NOW.isoformat()


@pytest.mark.parametrize("bad_id", ["abc", "", None])
def test_non_numeric_id_is_not_found(customers, products, alice, widget, bad_id):
    with pytest.raises(NotFoundError, match="Customer not found"):
        customers.get_by_id(bad_id)
    with pytest.raises(NotFoundError, match="Product not found"):
        products.delete(bad_id)
    assert len(products.get_all()) == 1
