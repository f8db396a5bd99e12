"""Declarative filter rules — allow-lists and deny-lists over one attribute.

Rules are data, not closures, so they can be validated, displayed and
tested independently of the broker wiring that evaluates them.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class RuleMode(str, Enum):
    """Whether a rule admits or excludes its listed values."""

    ALLOW = "allow"
    DENY = "deny"


class Rule(BaseModel):
    """A predicate over a single classification attribute.

    ALLOW matches when the attribute is present and its value is listed.
    DENY matches when the attribute is present and its value is not listed.
    An event without the attribute matches neither.
    """

    model_config = ConfigDict(frozen=True)

    attribute_key: str
    mode: RuleMode
    values: frozenset[str]

    @field_validator("attribute_key")
    @classmethod
    def _key_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("attribute_key must not be empty")
        return value

    @field_validator("values")
    @classmethod
    def _values_not_empty(cls, value: frozenset[str]) -> frozenset[str]:
        if not value:
            raise ValueError("values must contain at least one entry")
        return value

    @classmethod
    def allow(cls, attribute_key: str, values: Iterable[str]) -> Rule:
        return cls(attribute_key=attribute_key, mode=RuleMode.ALLOW, values=frozenset(values))

    @classmethod
    def deny(cls, attribute_key: str, values: Iterable[str]) -> Rule:
        return cls(attribute_key=attribute_key, mode=RuleMode.DENY, values=frozenset(values))

    def complement(self) -> Rule:
        """Return the rule with the opposite mode over the same values.

        A rule and its complement partition every event that carries the
        attribute: exactly one of the two matches.
        """
        other = RuleMode.DENY if self.mode is RuleMode.ALLOW else RuleMode.ALLOW
        return self.model_copy(update={"mode": other})

    def describe(self) -> str:
        """Short human-readable form, e.g. ``country in [China, Ireland]``."""
        op = "in" if self.mode is RuleMode.ALLOW else "not in"
        listed = ", ".join(sorted(self.values))
        return f"{self.attribute_key} {op} [{listed}]"
