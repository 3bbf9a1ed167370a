from __future__ import annotations

import re
from dataclasses import dataclass

from pscan.rules.errors import KeyPathError


_SEGMENT_RE = re.compile(r"^(?P<name>[^.()\s]+)(?:\((?P<index>\d+)\))?$")


@dataclass(frozen=True)
class KeySegment:
    name: str
    index: int | None = None

    def __str__(self) -> str:
        if self.index is None:
            return self.name
        return f"{self.name}({self.index})"


def parse_key_path(path: str) -> tuple[KeySegment, ...]:
    """
    Split a dotted key path into segments.

    `pscans.autoTagScanners.scanner(2).name` ->
    (pscans, autoTagScanners, scanner[2], name)
    """
    raw = str(path or "").strip()
    if not raw:
        raise KeyPathError("empty key path")
    out: list[KeySegment] = []
    for part in raw.split("."):
        m = _SEGMENT_RE.match(part)
        if m is None:
            raise KeyPathError(f"path={raw!r} segment={part!r}")
        idx = m.group("index")
        out.append(KeySegment(m.group("name"), int(idx) if idx is not None else None))
    return tuple(out)


def indexed_key(base: str, index: int) -> str:
    if index < 0:
        raise KeyPathError(f"negative index={index} base={base!r}")
    return f"{base}({index})"
