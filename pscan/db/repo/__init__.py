from pscan.db.repo.config_repo import ConfigDocumentsRepo

__all__ = ["ConfigDocumentsRepo"]
