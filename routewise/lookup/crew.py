"""Movie crew lookup — a stateless read path beside the routing pipeline.

``get_crew`` takes the path and query parameters of a
``GET /crew/movies/{movieId}?role=<role>`` request and returns a
``LookupResponse``:

- 400 when ``movieId`` is missing or not a number
- 404 when a role filter matches no crew member
- 200 with the JSON list of crew records otherwise

Role comparison is case-insensitive.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from routewise.models.crew import CrewMember, LookupResponse

logger = logging.getLogger(__name__)


class CrewStore:
    """In-memory crew table keyed by movie id, sorted by role."""

    def __init__(self, members: Iterable[CrewMember] = ()) -> None:
        self._by_movie: dict[int, list[CrewMember]] = {}
        for member in members:
            self._by_movie.setdefault(member.movie_id, []).append(member)
        for rows in self._by_movie.values():
            rows.sort(key=lambda m: m.role)

    @classmethod
    def from_json(cls, path: Path) -> CrewStore:
        """Load crew records from a JSON array of ``{movieId, role, names}``."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        members = [
            CrewMember(movie_id=item["movieId"], role=item["role"], names=item["names"])
            for item in raw
        ]
        logger.info("Loaded %d crew records from %s", len(members), path)
        return cls(members)

    def query(self, movie_id: int) -> list[CrewMember]:
        return list(self._by_movie.get(movie_id, []))

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._by_movie.values())


def _to_item(member: CrewMember) -> dict[str, object]:
    return {"movieId": member.movie_id, "role": member.role, "names": member.names}


def get_crew(
    store: CrewStore,
    path_parameters: Mapping[str, str] | None,
    query_parameters: Mapping[str, str] | None = None,
) -> LookupResponse:
    """Answer a crew lookup for one movie, optionally filtered by role."""
    movie_id_str = (path_parameters or {}).get("movieId")
    if not movie_id_str:
        return LookupResponse(
            status_code=400, body={"message": "movieId path parameter is required"}
        )
    try:
        movie_id = int(movie_id_str)
    except ValueError:
        return LookupResponse(status_code=400, body={"message": "movieId must be a number"})

    crew = store.query(movie_id)

    role = (query_parameters or {}).get("role")
    if role:
        crew = [m for m in crew if m.role.lower() == role.lower()]
        if not crew:
            return LookupResponse(
                status_code=404,
                body={"message": f"No crew with role {role!r} for movie {movie_id}"},
            )

    return LookupResponse(status_code=200, body=[_to_item(m) for m in crew])
