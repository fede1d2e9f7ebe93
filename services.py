"""
Entity services for customers, products and sales.

The services translate between wire-shaped schema objects and the
storage-shaped records held by a Repository. They perform no validation;
request schemas handle that at the HTTP edge.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

import config
from database import NotFoundError, Repository, StoreError
from schemas import (
    Customer, CustomerIn, Dashboard, DashboardMetrics, Product, ProductIn,
    RecentSale, Sale, SaleIn, StockAlert,
)

logger = logging.getLogger(__name__)

IN_STOCK = "In Stock"
LOW_STOCK = "Low Stock"
OUT_OF_STOCK = "Out of Stock"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ----- Customers -----

def _to_customer(record: dict, clock: Callable[[], datetime] = utc_now) -> Customer:
    return Customer(
        id=record["Id"],
        name=record.get("name") or "",
        email=record.get("email") or "",
        phone=record.get("phone") or "",
        notes=record.get("notes") or "",
        total_purchases=record.get("total_purchases") or 0,
        created_at=record.get("created_at") or clock().isoformat(),
    )


class CustomerService:
    def __init__(self, repo: Repository, clock: Callable[[], datetime] = utc_now):
        self.repo = repo
        self.clock = clock

    def get_all(self) -> List[Customer]:
        try:
            return [_to_customer(r, self.clock) for r in self.repo.get_all()]
        except StoreError as e:
            logger.error(f"Error fetching customers: {e}")
            return []

    def get_by_id(self, customer_id) -> Customer:
        try:
            return _to_customer(self.repo.get_by_id(customer_id), self.clock)
        except (NotFoundError, StoreError) as e:
            logger.error(f"Error fetching customer {customer_id}: {e}")
            raise NotFoundError("Customer not found") from e

    def search(self, term: Optional[str]) -> List[Customer]:
        customers = self.get_all()
        if not term:
            return customers
        needle = term.lower()
        return [
            c for c in customers
            if needle in c.name.lower() or needle in c.email.lower() or term in c.phone
        ]

    def create(self, data: CustomerIn) -> Customer:
        record = {
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "notes": data.notes,
            "total_purchases": 0,
            "created_at": self.clock().isoformat(),
        }
        try:
            return _to_customer(self.repo.create(record), self.clock)
        except StoreError as e:
            logger.error(f"Error creating customer: {e}")
            raise

    def update(self, customer_id, data: CustomerIn) -> Customer:
        # total_purchases is owned by the sale workflow
        fields = {"name": data.name, "email": data.email, "phone": data.phone, "notes": data.notes}
        try:
            return _to_customer(self.repo.update(customer_id, fields), self.clock)
        except NotFoundError:
            raise NotFoundError("Customer not found")
        except StoreError as e:
            logger.error(f"Error updating customer {customer_id}: {e}")
            raise

    def delete(self, customer_id) -> bool:
        try:
            return self.repo.delete(customer_id)
        except NotFoundError:
            raise NotFoundError("Customer not found")
        except StoreError as e:
            logger.error(f"Error deleting customer {customer_id}: {e}")
            raise

    def update_total_purchases(self, customer_id, amount: float) -> None:
        """Add amount to the customer's running total. Best-effort: errors are logged."""
        try:
            customer = self.get_by_id(customer_id)
            new_total = (customer.total_purchases or 0) + amount
            self.repo.update(customer_id, {"total_purchases": new_total})
        except (NotFoundError, StoreError) as e:
            logger.error(f"Error updating customer total purchases for {customer_id}: {e}")


# ----- Products -----

def _to_product(record: dict, clock: Callable[[], datetime] = utc_now) -> Product:
    return Product(
        id=record["Id"],
        name=record.get("name") or "",
        price=record.get("price") or 0,
        stock=record.get("stock") or 0,
        low_stock_threshold=record.get("low_stock_threshold") or 0,
        created_at=record.get("created_at") or clock().isoformat(),
    )


def _product_fields(data: ProductIn) -> dict:
    return {
        "name": data.name,
        "price": data.price,
        "stock": data.stock,
        "low_stock_threshold": data.low_stock_threshold,
    }


def is_low_stock(product: Product) -> bool:
    return product.stock <= product.low_stock_threshold


def stock_status(product: Product) -> str:
    if product.stock == 0:
        return OUT_OF_STOCK
    if is_low_stock(product):
        return LOW_STOCK
    return IN_STOCK


class ProductService:
    def __init__(self, repo: Repository, clock: Callable[[], datetime] = utc_now):
        self.repo = repo
        self.clock = clock

    def get_all(self) -> List[Product]:
        try:
            return [_to_product(r, self.clock) for r in self.repo.get_all()]
        except StoreError as e:
            logger.error(f"Error fetching products: {e}")
            return []

    def get_by_id(self, product_id) -> Product:
        try:
            return _to_product(self.repo.get_by_id(product_id), self.clock)
        except (NotFoundError, StoreError) as e:
            logger.error(f"Error fetching product {product_id}: {e}")
            raise NotFoundError("Product not found") from e

    def search(self, term: Optional[str]) -> List[Product]:
        products = self.get_all()
        if not term:
            return products
        return [p for p in products if term.lower() in p.name.lower()]

    def create(self, data: ProductIn) -> Product:
        record = _product_fields(data)
        record["created_at"] = self.clock().isoformat()
        try:
            return _to_product(self.repo.create(record), self.clock)
        except StoreError as e:
            logger.error(f"Error creating product: {e}")
            raise

    def update(self, product_id, data: ProductIn) -> Product:
        try:
            return _to_product(self.repo.update(product_id, _product_fields(data)), self.clock)
        except NotFoundError:
            raise NotFoundError("Product not found")
        except StoreError as e:
            logger.error(f"Error updating product {product_id}: {e}")
            raise

    def delete(self, product_id) -> bool:
        try:
            return self.repo.delete(product_id)
        except NotFoundError:
            raise NotFoundError("Product not found")
        except StoreError as e:
            logger.error(f"Error deleting product {product_id}: {e}")
            raise

    def update_stock(self, product_id, quantity: int) -> Product:
        """Take quantity units out of stock, flooring at zero."""
        product = self.get_by_id(product_id)
        new_stock = max(0, product.stock - quantity)
        try:
            return _to_product(self.repo.update(product_id, {"stock": new_stock}), self.clock)
        except NotFoundError:
            raise NotFoundError("Product not found")
        except StoreError as e:
            logger.error(f"Error updating product stock for {product_id}: {e}")
            raise

    def get_low_stock_products(self) -> List[Product]:
        return [p for p in self.get_all() if is_low_stock(p)]


# ----- Sales -----

def _to_sale(record: dict) -> Sale:
    return Sale(
        id=record["Id"],
        customer_id=record["customer_id"],
        items=[
            {"product_id": i["product_id"], "quantity": i["quantity"], "price": i["price"]}
            for i in record.get("items") or []
        ],
        total=record.get("total") or 0,
        date=record["date"],
    )


class SalesService:
    """Sales records plus the sale workflow (sale, then stock, then customer total)."""

    def __init__(self, repo: Repository, products: ProductService, customers: CustomerService,
                 clock: Callable[[], datetime] = utc_now):
        self.repo = repo
        self.products = products
        self.customers = customers
        self.clock = clock

    def get_all(self) -> List[Sale]:
        try:
            return [_to_sale(r) for r in self.repo.get_all()]
        except StoreError as e:
            logger.error(f"Error fetching sales: {e}")
            return []

    def get_by_id(self, sale_id) -> Sale:
        try:
            return _to_sale(self.repo.get_by_id(sale_id))
        except (NotFoundError, StoreError) as e:
            logger.error(f"Error fetching sale {sale_id}: {e}")
            raise NotFoundError("Sale not found") from e

    def create(self, data: SaleIn) -> Sale:
        """
        Record a sale, then apply its bookkeeping.

        Steps run in order with no rollback. Once the sale is stored, stock
        and customer-total failures are logged and the sale is still returned.
        """
        record = {
            "customer_id": data.customer_id,
            "items": [
                {"product_id": i.product_id, "quantity": i.quantity, "price": i.price}
                for i in data.items
            ],
            "total": data.total,
            "date": self.clock().isoformat(),
        }
        try:
            stored = self.repo.create(record)
        except StoreError as e:
            logger.error(f"Error creating sale: {e}")
            raise

        for item in data.items:
            try:
                self.products.update_stock(item.product_id, item.quantity)
            except (NotFoundError, StoreError):
                logger.exception(f"Sale {stored['Id']}: stock update failed for product {item.product_id}")

        self.customers.update_total_purchases(data.customer_id, data.total)

        return Sale(id=stored["Id"], customer_id=data.customer_id, items=data.items,
                    total=data.total, date=record["date"])

    def delete(self, sale_id) -> bool:
        # Stock and customer totals are not restored.
        try:
            return self.repo.delete(sale_id)
        except NotFoundError:
            raise NotFoundError("Sale not found")
        except StoreError as e:
            logger.error(f"Error deleting sale {sale_id}: {e}")
            raise

    def get_sales_by_customer(self, customer_id) -> List[Sale]:
        try:
            cid = int(customer_id)
        except (TypeError, ValueError):
            return []
        return [s for s in self.get_all() if s.customer_id == cid]

    def get_sales_today(self) -> List[Sale]:
        today = self.clock().strftime("%Y-%m-%d")
        return [s for s in self.get_all() if s.date.startswith(today)]

    def get_sales_this_month(self) -> List[Sale]:
        this_month = self.clock().strftime("%Y-%m")
        return [s for s in self.get_all() if s.date.startswith(this_month)]


# ----- Dashboard -----

def build_dashboard(sales: SalesService, customers: CustomerService, products: ProductService) -> Dashboard:
    all_sales = sales.get_all()
    all_customers = customers.get_all()
    low_stock = products.get_low_stock_products()

    names = {c.id: c.name for c in all_customers}
    recent = sorted(all_sales, key=lambda s: s.date, reverse=True)[:config.RECENT_SALES_LIMIT]

    return Dashboard(
        metrics=DashboardMetrics(
            today_sales=sum(s.total for s in sales.get_sales_today()),
            month_sales=sum(s.total for s in sales.get_sales_this_month()),
            customer_count=len(all_customers),
            low_stock_count=len(low_stock),
        ),
        recent_sales=[
            RecentSale(
                id=s.id,
                customer_id=s.customer_id,
                customer_name=names.get(s.customer_id, "Unknown Customer"),
                total=s.total,
                date=s.date,
                item_count=len(s.items),
            )
            for s in recent
        ],
        low_stock_products=[
            StockAlert(**p.model_dump(), status=stock_status(p)) for p in low_stock
        ],
    )
