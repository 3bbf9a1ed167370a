from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from pscan.db.config import DEFAULT_DOCUMENT, redact_database_url
from pscan.db.engine import make_engine
from pscan.db.repo import ConfigDocumentsRepo
from pscan.rules.errors import PSCAN_005_STORE_IO, ConfigTreeError
from pscan.store.tree import MemoryConfigTree, Scalar


REQUIRED_TABLES = ("config_documents",)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sqlite_path_from_url(url: str, fallback_root: Path) -> Path | None:
    try:
        parsed = make_url(url)
    except Exception:
        return None
    if not parsed.drivername.startswith("sqlite"):
        return None
    db_name = parsed.database or ""
    if not db_name or db_name == ":memory:":
        return None
    p = Path(db_name)
    if p.is_absolute():
        return p
    return (fallback_root / p).resolve()


def _sqlite_url_for_path(url: str, db_path: Path) -> str:
    return make_url(url).set(database=db_path.as_posix()).render_as_string(hide_password=False)


class SQLAlchemyConfigTree(MemoryConfigTree):
    """
    Config tree stored as one JSON document row in `config_documents`.

    The whole document is read on construction or `reload()` and written back on
    `save()` (or after every change when `autosave` is set).
    """

    def __init__(
        self,
        project_root: Path,
        database_url: str,
        *,
        document: str = DEFAULT_DOCUMENT,
        auto_init: bool = True,
        autosave: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.project_root = project_root
        self.document = document
        self.autosave = autosave
        self._logger = logger or logging.getLogger("config_tree_sa")
        db_path = _sqlite_path_from_url(database_url, project_root)
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            # relative sqlite paths are anchored at project_root, not the cwd
            database_url = _sqlite_url_for_path(database_url, db_path)
        self.database_url = database_url
        self.engine: Engine = make_engine(database_url)
        self._Session = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False)
        self.repo = ConfigDocumentsRepo(self._Session)
        if auto_init:
            self.ensure_schema()
        super().__init__({})
        if auto_init:
            self.reload()

    def _run_alembic_upgrade(self) -> None:
        alembic_ini = self.project_root / "alembic.ini"
        script_location = self.project_root / "alembic"
        if not alembic_ini.exists() or not script_location.exists():
            fallback_root = Path(__file__).resolve().parents[2]
            alembic_ini = fallback_root / "alembic.ini"
            script_location = fallback_root / "alembic"
        if not alembic_ini.exists() or not script_location.exists():
            raise RuntimeError("Alembic configuration not found")
        cfg = Config(str(alembic_ini))
        cfg.set_main_option("script_location", str(script_location))
        cfg.set_main_option("sqlalchemy.url", self.database_url.replace("%", "%%"))
        prev = os.environ.get("DATABASE_URL")
        try:
            os.environ["DATABASE_URL"] = self.database_url
            command.upgrade(cfg, "head")
        finally:
            if prev is None:
                os.environ.pop("DATABASE_URL", None)
            else:
                os.environ["DATABASE_URL"] = prev

    def ensure_schema(self) -> None:
        try:
            insp = inspect(self.engine)
            missing = [name for name in REQUIRED_TABLES if not insp.has_table(name)]
        except SQLAlchemyError as e:
            raise RuntimeError(
                "Database schema is not ready; cannot inspect "
                f"url={redact_database_url(self.database_url)}: {e}"
            ) from e
        if not missing:
            return
        self._logger.info(
            "config schema missing tables=%s url=%s; running alembic upgrade",
            missing,
            redact_database_url(self.database_url),
        )
        try:
            self._run_alembic_upgrade()
            insp = inspect(self.engine)
            still_missing = [name for name in REQUIRED_TABLES if not insp.has_table(name)]
            if still_missing:
                raise RuntimeError(f"missing tables after migration: {still_missing}")
        except Exception as e:
            raise RuntimeError(
                "Database schema is not ready; run `alembic upgrade head` "
                f"(url={redact_database_url(self.database_url)}): {e}"
            ) from e

    def reload(self) -> None:
        try:
            tree = self.repo.get_tree(self.document)
        except SQLAlchemyError as e:
            raise ConfigTreeError(PSCAN_005_STORE_IO, f"document={self.document} error={e}") from e
        self._root = tree if tree is not None else {}

    def save(self) -> None:
        try:
            self.repo.upsert_tree(self.document, tree_json=self.to_dict(), updated_at=_utc_now())
        except SQLAlchemyError as e:
            self._logger.error("failed to save config document=%s error=%s", self.document, e)
            raise ConfigTreeError(PSCAN_005_STORE_IO, f"document={self.document} error={e}") from e

    def write(self, path: str, value: Scalar) -> None:
        super().write(path, value)
        if self.autosave:
            self.save()

    def clear_subtree(self, path: str) -> None:
        super().clear_subtree(path)
        if self.autosave:
            self.save()

    def close(self) -> None:
        self.engine.dispose()
