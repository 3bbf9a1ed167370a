from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pscan.db.base import Base
from pscan.db.types import JSONText


class ConfigDocument(Base):
    __tablename__ = "config_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    tree_json: Mapped[dict[str, Any]] = mapped_column(JSONText(), nullable=False, default=dict)
    updated_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="uq_config_documents_name"),
    )
