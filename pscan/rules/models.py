from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .errors import InvalidRuleTypeError


class RuleType(str, Enum):
    TAG = "TAG"
    NOTE = "NOTE"

    @classmethod
    def parse(cls, value: Any) -> "RuleType":
        # Stored text must match the member name exactly.
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidRuleTypeError(value)
        try:
            return cls[value]
        except KeyError:
            raise InvalidRuleTypeError(value) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RuleRecord:
    """
    One regex auto tag rule.

    An empty regex means the rule places no constraint on that part of the message.
    """

    name: str
    kind: RuleType
    config: str = ""
    request_url_regex: str = ""
    request_header_regex: str = ""
    response_header_regex: str = ""
    response_body_regex: str = ""
    enabled: bool = True

    def replace(self, **changes: Any) -> "RuleRecord":
        return replace(self, **changes)
