from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from pscan.rules.errors import PSCAN_001_TREE_INVALID, PSCAN_005_STORE_IO, ConfigConversionError, ConfigTreeError
from pscan.store.tree import MemoryConfigTree, Scalar


def _load_yaml_doc(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigTreeError(PSCAN_005_STORE_IO, f"path={path} error={e}") from e
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ConfigConversionError(PSCAN_001_TREE_INVALID, f"path={path} root is {type(obj).__name__}")
    return obj


class YamlConfigTree(MemoryConfigTree):
    """
    Config tree persisted to a YAML file.

    Changes stay in memory until `save()` unless `autosave` is set. Only writes made
    on this tree trigger autosave; writes through child trees do not.
    """

    def __init__(self, path: Path, *, autosave: bool = False) -> None:
        self.path = Path(path)
        self.autosave = autosave
        super().__init__(_load_yaml_doc(self.path))

    def reload(self) -> None:
        self._root = _load_yaml_doc(self.path)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(self._root, allow_unicode=True, sort_keys=False, default_flow_style=False)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, self.path)
        except OSError as e:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise ConfigTreeError(PSCAN_005_STORE_IO, f"path={self.path} error={e}") from e

    def write(self, path: str, value: Scalar) -> None:
        super().write(path, value)
        if self.autosave:
            self.save()

    def clear_subtree(self, path: str) -> None:
        super().clear_subtree(path)
        if self.autosave:
            self.save()
