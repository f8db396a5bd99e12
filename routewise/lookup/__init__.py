"""Movie crew lookup API (read-only, no routing logic)."""

from routewise.lookup.crew import CrewStore, get_crew

__all__ = ["CrewStore", "get_crew"]
