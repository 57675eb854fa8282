"""
Fixed write/query workload used to check persistence across restarts.

The first boot seeds a fresh collection and proves it is searchable; the
second boot only reads collection metadata and checks nothing was lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from ag_common.errors import PersistenceViolationError, UnexpectedResponseError
from ag_instance.models import CollectionInfo, SearchResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixturePoint:
    id: int
    vector: tuple[float, ...]
    payload: Mapping[str, Any]

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "vector": list(self.vector), "payload": dict(self.payload)}


DEFAULT_POINTS: tuple[FixturePoint, ...] = (
    FixturePoint(1, (0.05, 0.61, 0.76, 0.74), {"city": "Berlin", "count": 1}),
    FixturePoint(2, (0.19, 0.81, 0.75, 0.11), {"city": "London", "count": 2}),
    FixturePoint(3, (0.36, 0.55, 0.47, 0.94), {"city": "Moscow", "count": 3}),
)


@dataclass(frozen=True)
class PersistenceCheckpoint:
    """The collection layout and records written on boot1 and checked on boot2."""

    collection: str
    vectors: Mapping[str, Any] = field(
        default_factory=lambda: {"size": 4, "distance": "Dot"}
    )
    optimizers_config: Mapping[str, Any] = field(
        default_factory=lambda: {"default_segment_number": 1}
    )
    replication_factor: int = 1
    points: tuple[FixturePoint, ...] = DEFAULT_POINTS
    probe_vector: tuple[float, ...] = (0.2, 0.1, 0.9, 0.7)
    top: int = 3

    @property
    def expected_count(self) -> int:
        return len(self.points)


class WorkloadClient(Protocol):
    def delete_collection(self, name: str) -> int: ...

    def create_collection(
        self,
        name: str,
        *,
        vectors: Mapping[str, Any],
        optimizers_config: Mapping[str, Any] | None = None,
        replication_factor: int | None = None,
    ) -> None: ...

    def upsert_points(
        self, name: str, points: Sequence[Mapping[str, Any]], *, wait: bool = True
    ) -> None: ...

    def search(self, name: str, vector: Sequence[float], *, top: int) -> SearchResponse: ...

    def collection_info(self, name: str) -> CollectionInfo: ...


class WorkloadDriver:
    """Drives the fixture against one running instance."""

    def __init__(self, client: WorkloadClient, fixture: PersistenceCheckpoint) -> None:
        self.client = client
        self.fixture = fixture

    def seed(self) -> SearchResponse:
        """boot1: recreate the collection, write the fixture, search it."""
        fixture = self.fixture
        status = self.client.delete_collection(fixture.collection)
        logger.debug("delete %s -> http=%s", fixture.collection, status)
        self.client.create_collection(
            fixture.collection,
            vectors=fixture.vectors,
            optimizers_config=fixture.optimizers_config,
            replication_factor=fixture.replication_factor,
        )
        self.client.upsert_points(
            fixture.collection,
            [point.to_payload() for point in fixture.points],
            wait=True,
        )
        response = self.client.search(
            fixture.collection, fixture.probe_vector, top=fixture.top
        )
        if not response.result:
            raise UnexpectedResponseError(
                f"expected non-empty search result for {fixture.collection}",
                context={"collection": fixture.collection},
            )
        return response

    def verify(self) -> int:
        """boot2: read-only check that every written record survived."""
        fixture = self.fixture
        info = self.client.collection_info(fixture.collection)
        if info.points_count < fixture.expected_count:
            raise PersistenceViolationError(
                f"expected points_count >= {fixture.expected_count}, "
                f"got {info.points_count}",
                context={
                    "collection": fixture.collection,
                    "expected": fixture.expected_count,
                    "observed": info.points_count,
                },
            )
        return info.points_count
