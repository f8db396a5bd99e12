"""Rule evaluation — pure, side-effect free, case-sensitive."""

from __future__ import annotations

from collections.abc import Mapping

from routewise.models.rules import Rule, RuleMode


def rule_matches(rule: Rule, attributes: Mapping[str, str]) -> bool:
    """Return whether *rule* accepts an event carrying *attributes*.

    Comparison is byte-exact.  Callers that need case-insensitive
    matching must normalise the attribute map before routing.

    >>> rule = Rule.allow("country", ["Ireland", "China"])
    >>> rule_matches(rule, {"country": "Ireland"})
    True
    >>> rule_matches(rule, {})
    False
    """
    value = attributes.get(rule.attribute_key)
    if value is None:
        # Missing attribute matches neither mode.
        return False
    if rule.mode is RuleMode.ALLOW:
        return value in rule.values
    return value not in rule.values
