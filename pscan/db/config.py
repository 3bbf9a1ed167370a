from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import make_url


DEFAULT_SQLITE_PATH = Path("data") / "pscan.db"
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"
DEFAULT_YAML_PATH = Path("data") / "config.yaml"
DEFAULT_DOCUMENT = "default"

ALLOWED_BACKENDS = {"memory", "yaml", "db"}


@dataclass(frozen=True)
class StoreSettings:
    backend: str
    database_url: str
    yaml_path: Path
    document: str


def _normalize_backend(v: str) -> str:
    vv = (v or "yaml").strip().lower()
    return vv if vv in ALLOWED_BACKENDS else "yaml"


def get_store_settings() -> StoreSettings:
    backend = _normalize_backend(os.environ.get("PSCAN_STORE_BACKEND", "yaml"))
    database_url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL).strip() or DEFAULT_DATABASE_URL
    yaml_path = os.environ.get("PSCAN_CONFIG_PATH", "").strip()
    document = os.environ.get("PSCAN_CONFIG_DOCUMENT", DEFAULT_DOCUMENT).strip() or DEFAULT_DOCUMENT
    return StoreSettings(
        backend=backend,
        database_url=database_url,
        yaml_path=Path(yaml_path) if yaml_path else DEFAULT_YAML_PATH,
        document=document,
    )


def redact_database_url(url: str) -> str:
    raw = (url or "").strip()
    if not raw:
        return ""
    try:
        return make_url(raw).render_as_string(hide_password=True)
    except Exception:
        return raw
