"""Crew records served by the movie crew lookup API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class CrewMember(BaseModel):
    """One crew credit: partition key ``movie_id``, sort key ``role``."""

    model_config = ConfigDict(frozen=True)

    movie_id: int
    role: str
    names: str


class LookupResponse(BaseModel):
    """An HTTP-style response: status code plus JSON-serializable body."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Any = None
