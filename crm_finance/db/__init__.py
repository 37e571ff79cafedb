"""Database package"""

from crm_finance.db.session import AsyncSessionLocal, engine, get_db
from crm_finance.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
