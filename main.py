import logging
import sys
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List, Optional

import config
from database import db, NotFoundError, StoreError
from schemas import (
    Customer, CustomerIn, Dashboard, Product, ProductIn, Sale, SaleIn,
    StoreStatus,
)
from services import CustomerService, ProductService, SalesService, build_dashboard

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

app = FastAPI(title="SimpleShop CRM API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- Helpers -----

def collection(name: str):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db[name]


def customer_service() -> CustomerService:
    return CustomerService(collection("customer"))


def product_service() -> ProductService:
    return ProductService(collection("product"))


def sales_service(
    products: ProductService = Depends(product_service),
    customers: CustomerService = Depends(customer_service),
) -> SalesService:
    return SalesService(collection("sale"), products, customers)


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Record store failure"})


# ----- Customer Endpoints -----

@app.get("/api/customers", response_model=List[Customer])
def list_customers(q: Optional[str] = None, customers: CustomerService = Depends(customer_service)):
    return customers.search(q)


@app.get("/api/customers/{customer_id}", response_model=Customer)
def get_customer(customer_id: int, customers: CustomerService = Depends(customer_service)):
    return customers.get_by_id(customer_id)


@app.get("/api/customers/{customer_id}/sales", response_model=List[Sale])
def list_customer_sales(customer_id: int, sales: SalesService = Depends(sales_service)):
    return sales.get_sales_by_customer(customer_id)


@app.post("/api/customers", response_model=Customer, status_code=201)
def add_customer(customer: CustomerIn, customers: CustomerService = Depends(customer_service)):
    return customers.create(customer)


@app.put("/api/customers/{customer_id}", response_model=Customer)
def update_customer(customer_id: int, customer: CustomerIn, customers: CustomerService = Depends(customer_service)):
    return customers.update(customer_id, customer)


@app.delete("/api/customers/{customer_id}", response_model=dict)
def delete_customer(customer_id: int, customers: CustomerService = Depends(customer_service)):
    return {"deleted": customers.delete(customer_id)}


# ----- Product Endpoints -----

@app.get("/api/products", response_model=List[Product])
def list_products(q: Optional[str] = None, products: ProductService = Depends(product_service)):
    return products.search(q)


@app.get("/api/products/low-stock", response_model=List[Product])
def list_low_stock_products(products: ProductService = Depends(product_service)):
    return products.get_low_stock_products()


@app.get("/api/products/{product_id}", response_model=Product)
def get_product(product_id: int, products: ProductService = Depends(product_service)):
    return products.get_by_id(product_id)


@app.post("/api/products", response_model=Product, status_code=201)
def add_product(product: ProductIn, products: ProductService = Depends(product_service)):
    return products.create(product)


@app.put("/api/products/{product_id}", response_model=Product)
def update_product(product_id: int, product: ProductIn, products: ProductService = Depends(product_service)):
    return products.update(product_id, product)


@app.delete("/api/products/{product_id}", response_model=dict)
def delete_product(product_id: int, products: ProductService = Depends(product_service)):
    return {"deleted": products.delete(product_id)}


# ----- Sales -----

@app.get("/api/sales", response_model=List[Sale])
def list_sales(period: Optional[str] = None, sales: SalesService = Depends(sales_service)):
    if period is None:
        return sales.get_all()
    if period == "today":
        return sales.get_sales_today()
    if period == "month":
        return sales.get_sales_this_month()
    raise HTTPException(status_code=400, detail="period must be 'today' or 'month'")


@app.get("/api/sales/{sale_id}", response_model=Sale)
def get_sale(sale_id: int, sales: SalesService = Depends(sales_service)):
    return sales.get_by_id(sale_id)


@app.post("/api/sales", response_model=Sale, status_code=201)
def create_sale(payload: SaleIn, sales: SalesService = Depends(sales_service)):
    sale = sales.create(payload)
    logger.info(f"Recorded sale {sale.id} for customer {sale.customer_id}: {sale.total}")
    return sale


@app.delete("/api/sales/{sale_id}", response_model=dict)
def delete_sale(sale_id: int, sales: SalesService = Depends(sales_service)):
    return {"deleted": sales.delete(sale_id)}


# ----- Dashboard -----

@app.get("/api/dashboard", response_model=Dashboard)
def dashboard(
    sales: SalesService = Depends(sales_service),
    customers: CustomerService = Depends(customer_service),
    products: ProductService = Depends(product_service),
):
    return build_dashboard(sales, customers, products)


# ----- Misc & Test -----

@app.get("/")
def read_root():
    return {"message": "SimpleShop CRM API"}


@app.get("/test", response_model=StoreStatus)
def test_database():
    response = StoreStatus(backend="✅ Running", database="❌ Not Available")
    try:
        if db is not None:
            response.database = f"✅ Connected ({config.STORE_BACKEND})"
            response.collections = db.list_collection_names()
        else:
            response.database = "❌ Not Configured"
    except StoreError as e:
        response.database = f"Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
