"""
Runtime configuration for the Inventory service.

All settings are read from environment variables with sensible defaults for
local development.
"""
import os

# Database holding the document collection
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./inventory.db")

# Optional Redis URL; when unset, change notifications stay in-process
REDIS_URL = os.getenv("REDIS_URL") or None

# Name of the document collection that stores inventory records
COLLECTION_NAME = os.getenv("COLLECTION_NAME", "items")

# Records at or below this quantity are flagged as low stock
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Used by the HTTP client
INVENTORY_SERVICE_URL = os.getenv("INVENTORY_SERVICE_URL", "http://inventory:8000")
INVENTORY_CLIENT_TIMEOUT = float(os.getenv("INVENTORY_CLIENT_TIMEOUT", "5.0"))  # seconds
