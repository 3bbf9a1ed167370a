from pscan.db.base import Base
from pscan.db.config import StoreSettings, get_store_settings
from pscan.db.engine import make_engine

__all__ = [
    "Base",
    "StoreSettings",
    "get_store_settings",
    "make_engine",
]
