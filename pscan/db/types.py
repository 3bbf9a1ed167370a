from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator


class JSONText(TypeDecorator):
    """
    JSON document column: JSONB on PostgreSQL, serialized TEXT elsewhere.

    Config trees hold only mappings, lists and scalars, so they survive either form.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None or dialect.name == "postgresql":
            return value
        return json.dumps(value, ensure_ascii=False, sort_keys=False)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None or isinstance(value, (dict, list)):
            return value
        return json.loads(value)
