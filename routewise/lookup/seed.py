"""Seed crew records for the lookup table."""

from __future__ import annotations

from routewise.models.crew import CrewMember

SEED_CREW: list[CrewMember] = [
    CrewMember(movie_id=1234, role="director", names="Joe Bloggs"),
    CrewMember(movie_id=1234, role="producer", names="Jane Doe, Tom Smith"),
    CrewMember(movie_id=1234, role="writer", names="Alice Murphy"),
    CrewMember(movie_id=2345, role="director", names="Sam Walsh"),
    CrewMember(movie_id=2345, role="camera", names="Ruth Byrne, Li Wei"),
    CrewMember(movie_id=3456, role="producer", names="Mary Kelly"),
]
