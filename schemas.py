"""
Schemas for the SimpleShop CRM API

Each entity model maps to a record collection (customer, product, sale).
Collection name is the lowercase of the class name. Fields use snake_case in
Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ----- Customers -----

class CustomerIn(ApiModel):
    """Editable customer fields (create / update form)"""
    name: str = Field("", description="Customer name")
    email: str = Field("", description="Email address")
    phone: str = Field("", description="Phone number")
    notes: str = Field("", description="Free-text notes")


class Customer(CustomerIn):
    id: int = Field(..., alias="Id")
    total_purchases: float = Field(0, ge=0, alias="totalPurchases", description="Running total of sales")
    created_at: str = Field(..., alias="createdAt")


# ----- Products -----

class ProductIn(ApiModel):
    """Editable product fields (create / update form)"""
    name: str = Field("", description="Product name")
    price: float = Field(..., gt=0, description="Unit price")
    stock: int = Field(0, ge=0, description="Quantity in stock")
    low_stock_threshold: int = Field(0, ge=0, alias="lowStockThreshold", description="Restock alert level")


class Product(ProductIn):
    id: int = Field(..., alias="Id")
    price: float = Field(0, ge=0)
    created_at: str = Field(..., alias="createdAt")


# ----- Sales -----

class SaleItem(ApiModel):
    product_id: int = Field(..., alias="productId", description="Referenced product Id")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at time of sale")


class SaleBase(ApiModel):
    customer_id: int = Field(..., alias="customerId")
    items: List[SaleItem] = Field(default_factory=list)
    total: float = Field(..., ge=0, description="sum(price * quantity)")


class SaleIn(SaleBase):
    """New sale from the sale form; the cart must not be empty"""
    items: List[SaleItem] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_total(self):
        expected = round(sum(i.price * i.quantity for i in self.items), 2)
        if round(self.total, 2) != expected:
            raise ValueError(f"total {self.total} does not match line items ({expected})")
        return self


class Sale(SaleBase):
    id: int = Field(..., alias="Id")
    date: str = Field(..., description="ISO-8601 timestamp")


# ----- Dashboard -----

class DashboardMetrics(ApiModel):
    today_sales: float = Field(0, alias="todaySales")
    month_sales: float = Field(0, alias="monthSales")
    customer_count: int = Field(0, alias="customerCount")
    low_stock_count: int = Field(0, alias="lowStockCount")


class RecentSale(ApiModel):
    id: int = Field(..., alias="Id")
    customer_id: int = Field(..., alias="customerId")
    customer_name: str = Field(..., alias="customerName")
    total: float
    date: str
    item_count: int = Field(0, alias="itemCount")


class StockAlert(Product):
    status: str = Field(..., description="In Stock | Low Stock | Out of Stock")


class Dashboard(ApiModel):
    metrics: DashboardMetrics
    recent_sales: List[RecentSale] = Field(default_factory=list, alias="recentSales")
    low_stock_products: List[StockAlert] = Field(default_factory=list, alias="lowStockProducts")


class StoreStatus(ApiModel):
    backend: str
    database: str
    collections: Optional[List[str]] = None
