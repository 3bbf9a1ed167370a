from __future__ import annotations

from copy import deepcopy
from datetime import date
from typing import Any, Protocol, runtime_checkable

from pscan.rules.errors import (
    PSCAN_001_TREE_INVALID,
    PSCAN_003_VALUE_CONVERSION,
    ConfigConversionError,
    KeyPathError,
)
from pscan.store.keypath import KeySegment, parse_key_path


Scalar = str | bool | int | float

_MISSING = object()

_TRUE_TEXT = {"true", "yes", "on", "1"}
_FALSE_TEXT = {"false", "no", "off", "0"}


@runtime_checkable
class ConfigTree(Protocol):
    def read_string(self, path: str, default: str | None = None) -> str | None:
        ...

    def read_bool(self, path: str, default: bool = False) -> bool:
        ...

    def list_child_nodes(self, base_path: str) -> list["ConfigTree"]:
        ...

    def write(self, path: str, value: Scalar) -> None:
        ...

    def clear_subtree(self, path: str) -> None:
        ...


def _as_list(node: dict[str, Any], name: str) -> list[Any]:
    existing = node.get(name)
    if existing is None:
        lst: list[Any] = []
        node[name] = lst
        return lst
    if isinstance(existing, list):
        return existing
    lst = [existing]
    node[name] = lst
    return lst


def _step(node: Any, seg: KeySegment) -> Any:
    if not isinstance(node, dict):
        return _MISSING
    val = node.get(seg.name)
    if val is None:
        return _MISSING
    idx = seg.index or 0
    if isinstance(val, list):
        if idx >= len(val):
            return _MISSING
        return val[idx]
    if idx != 0:
        return _MISSING
    return val


class MemoryConfigTree:
    """
    Hierarchical key/value tree held in nested dicts.

    Repeated elements are stored as lists; a plain mapping where a list is expected
    is read as a single element. Child trees returned by `list_child_nodes` share
    storage with the tree they came from.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        if data is not None and not isinstance(data, dict):
            raise ConfigConversionError(PSCAN_001_TREE_INVALID, f"root is {type(data).__name__}")
        self._root: dict[str, Any] = data if data is not None else {}

    def _resolve(self, segments: tuple[KeySegment, ...]) -> Any:
        node: Any = self._root
        for seg in segments:
            node = _step(node, seg)
            if node is _MISSING:
                return _MISSING
        return node

    def read_string(self, path: str, default: str | None = None) -> str | None:
        val = self._resolve(parse_key_path(path))
        if val is _MISSING:
            return default
        if isinstance(val, bool):
            return "true" if val else "false"
        if isinstance(val, date):
            return val.isoformat()
        if isinstance(val, dict):
            raise ConfigConversionError(PSCAN_003_VALUE_CONVERSION, f"path={path} is a node")
        return str(val)

    def read_bool(self, path: str, default: bool = False) -> bool:
        val = self._resolve(parse_key_path(path))
        if val is _MISSING:
            return default
        if isinstance(val, bool):
            return val
        if isinstance(val, int) and val in (0, 1):
            return bool(val)
        if isinstance(val, str):
            t = val.strip().lower()
            if t in _TRUE_TEXT:
                return True
            if t in _FALSE_TEXT:
                return False
        raise ConfigConversionError(PSCAN_003_VALUE_CONVERSION, f"path={path} value={val!r} is not a boolean")

    def list_child_nodes(self, base_path: str) -> list["MemoryConfigTree"]:
        segments = parse_key_path(base_path)
        parent = self._resolve(segments[:-1])
        last = segments[-1]
        if not isinstance(parent, dict):
            return []
        raw = parent.get(last.name)
        if raw is None:
            return []
        elements = raw if isinstance(raw, list) else [raw]
        if last.index is not None:
            elements = elements[last.index : last.index + 1]
        out: list[MemoryConfigTree] = []
        for i, el in enumerate(elements):
            if not isinstance(el, dict):
                raise ConfigConversionError(
                    PSCAN_001_TREE_INVALID,
                    f"path={base_path} element={i} is a {type(el).__name__}, expected a node",
                )
            out.append(MemoryConfigTree(el))
        return out

    def write(self, path: str, value: Scalar) -> None:
        if value is None or not isinstance(value, (str, bool, int, float)):
            raise ConfigConversionError(
                PSCAN_003_VALUE_CONVERSION, f"path={path} unsupported value type={type(value).__name__}"
            )
        segments = parse_key_path(path)
        node: Any = self._root
        for pos, seg in enumerate(segments):
            if not isinstance(node, dict):
                raise ConfigConversionError(PSCAN_001_TREE_INVALID, f"path={path} passes through a value at {seg}")
            last = pos == len(segments) - 1
            if seg.index is None:
                if last:
                    node[seg.name] = value
                    return
                child = node.get(seg.name)
                if child is None:
                    child = {}
                    node[seg.name] = child
                elif isinstance(child, list):
                    if not child:
                        child.append({})
                    child = child[0]
                node = child
                continue

            lst = _as_list(node, seg.name)
            if seg.index > len(lst):
                raise KeyPathError(f"path={path} index={seg.index} size={len(lst)}")
            if seg.index == len(lst):
                lst.append(value if last else {})
            elif last:
                lst[seg.index] = value
            if last:
                return
            node = lst[seg.index]

    def clear_subtree(self, path: str) -> None:
        segments = parse_key_path(path)
        parent = self._resolve(segments[:-1])
        last = segments[-1]
        if not isinstance(parent, dict) or last.name not in parent:
            return
        if last.index is None:
            del parent[last.name]
            return
        raw = parent[last.name]
        if isinstance(raw, list):
            if last.index < len(raw):
                del raw[last.index]
            if not raw:
                del parent[last.name]
        elif last.index == 0:
            del parent[last.name]

    def to_dict(self) -> dict[str, Any]:
        return deepcopy(self._root)
