from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from pscan.db.models.config_documents import ConfigDocument


class ConfigDocumentsRepo:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._Session = session_factory

    def get_tree(self, name: str) -> dict[str, Any] | None:
        with self._Session() as s:
            row = s.execute(
                select(ConfigDocument.tree_json).where(ConfigDocument.name == name).limit(1)
            ).scalar_one_or_none()
            return dict(row) if isinstance(row, dict) else None

    def upsert_tree(self, name: str, *, tree_json: dict[str, Any], updated_at: str) -> None:
        with self._Session() as s:
            try:
                current = s.execute(
                    select(ConfigDocument).where(ConfigDocument.name == name).limit(1)
                ).scalar_one_or_none()
                if current is None:
                    s.add(ConfigDocument(name=name, tree_json=tree_json, updated_at=updated_at))
                else:
                    current.tree_json = tree_json
                    current.updated_at = updated_at
                s.commit()
            except Exception:
                s.rollback()
                raise
