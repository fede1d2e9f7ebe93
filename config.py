"""
Configuration for the SimpleShop CRM API.

All values come from the environment so the same build runs against the
in-memory store locally and MongoDB when DATABASE_URL is provided.
"""
import os

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "simpleshop_crm")

# "memory" | "mongo"
STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo" if DATABASE_URL else "memory").lower()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 8000))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Number of sales shown in the dashboard's recent list
RECENT_SALES_LIMIT = 10
