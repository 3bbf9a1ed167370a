from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Engine, create_engine


def _engine_options_for_url(url: str) -> dict[str, Any]:
    u = (url or "").strip().lower()
    if u.startswith("postgresql"):
        return {
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
            "future": True,
        }
    # SQLite keeps args minimal to avoid compatibility surprises.
    return {"future": True}


def make_engine(url: str, *, extra_options: Mapping[str, Any] | None = None) -> Engine:
    options = _engine_options_for_url(url)
    if extra_options:
        options.update(dict(extra_options))
    return create_engine(url, **options)