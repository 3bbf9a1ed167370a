from __future__ import annotations

from pathlib import Path

from pscan.db.config import StoreSettings, get_store_settings
from pscan.store.tree import ConfigTree, MemoryConfigTree
from pscan.store.yaml_tree import YamlConfigTree


def open_config_tree(settings: StoreSettings | None = None, *, project_root: Path | None = None) -> ConfigTree:
    """
    Open the config tree selected by `settings` (environment when omitted).

    Relative YAML paths resolve against `project_root`, defaulting to the working
    directory. The caller owns the returned tree and is responsible for saving it.
    """
    s = settings or get_store_settings()
    root = project_root or Path.cwd()
    if s.backend == "memory":
        return MemoryConfigTree()
    if s.backend == "db":
        from pscan.services.config_tree_sa import SQLAlchemyConfigTree

        return SQLAlchemyConfigTree(root, s.database_url, document=s.document)
    path = s.yaml_path if s.yaml_path.is_absolute() else root / s.yaml_path
    return YamlConfigTree(path)
