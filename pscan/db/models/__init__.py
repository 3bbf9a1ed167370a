from pscan.db.models.config_documents import ConfigDocument

__all__ = [
    "ConfigDocument",
]
