"""Routewise data models — all Pydantic v2, all frozen (immutable)."""

from routewise.models.crew import CrewMember, LookupResponse
from routewise.models.events import Event, RescueRecord
from routewise.models.reports import (
    BatchReport,
    DeliveryReport,
    RecordOutcome,
    RecordStatus,
)
from routewise.models.rules import Rule, RuleMode

__all__ = [
    # events
    "Event",
    "RescueRecord",
    # rules
    "Rule",
    "RuleMode",
    # reports
    "RecordStatus",
    "RecordOutcome",
    "BatchReport",
    "DeliveryReport",
    # crew lookup
    "CrewMember",
    "LookupResponse",
]
