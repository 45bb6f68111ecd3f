"""
Shortest-route computation over the fleet's static location graph.

Algorithm
---------
Single-source Dijkstra with a binary heap.  Weights are road lengths in km
and must be non-negative.  Heap entries are ``(distance, vertex_id)`` so
that, among vertices with the same tentative distance, the lowest id is
settled first; results are therefore deterministic for a given graph.

Complexity: O(E log V).  The city map is tiny (a handful of vertices), so
this is effectively constant per query.

The graph is built once from a map definition and never mutated afterwards;
``RouteGraph`` is safe to share between concurrent requests.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import NoRouteFound, NotFoundError, ValidationError


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    id: int
    name: str


@dataclass(frozen=True)
class Road:
    source: int
    destination: int
    distance_km: int


@dataclass(frozen=True)
class Route:
    distance_km: int
    path: tuple[str, ...]
    source: str
    destination: str


# ── Graph ─────────────────────────────────────────────────────────────


class RouteGraph:
    """Undirected weighted graph of named locations."""

    def __init__(self, location_names: Sequence[str], roads: Iterable[Road]):
        self._locations = tuple(
            Location(id=i, name=name) for i, name in enumerate(location_names)
        )
        adjacency: dict[int, list[tuple[int, int]]] = {
            loc.id: [] for loc in self._locations
        }
        for road in roads:
            self._check_id(road.source)
            self._check_id(road.destination)
            if road.distance_km < 0:
                raise ValidationError(
                    f"Road {road.source}-{road.destination} has negative length"
                )
            adjacency[road.source].append((road.destination, road.distance_km))
            adjacency[road.destination].append((road.source, road.distance_km))
        self._adjacency = {k: tuple(v) for k, v in adjacency.items()}

    @property
    def locations(self) -> tuple[Location, ...]:
        return self._locations

    def neighbours(self, location_id: int) -> tuple[tuple[int, int], ...]:
        self._check_id(location_id)
        return self._adjacency[location_id]

    def location_name(self, location_id: int) -> str:
        self._check_id(location_id)
        return self._locations[location_id].name

    def shortest_path(self, source_id: int, dest_id: int) -> Route:
        """Return the shortest route from *source_id* to *dest_id*.

        Raises ``NotFoundError`` for an unknown location id and
        ``NoRouteFound`` when the destination is unreachable.
        """
        self._check_id(source_id)
        self._check_id(dest_id)

        dist: dict[int, int] = {source_id: 0}
        parent: dict[int, int] = {}
        visited: set[int] = set()
        heap: list[tuple[int, int]] = [(0, source_id)]

        while heap:
            d, u = heapq.heappop(heap)
            if u in visited:
                continue
            visited.add(u)
            if u == dest_id:
                break
            for v, weight in self._adjacency[u]:
                if v in visited:
                    continue
                candidate = d + weight
                if v not in dist or candidate < dist[v]:
                    dist[v] = candidate
                    parent[v] = u
                    heapq.heappush(heap, (candidate, v))

        if dest_id not in visited:
            raise NoRouteFound(
                f"No route from {self.location_name(source_id)} "
                f"to {self.location_name(dest_id)}"
            )

        path = [dest_id]
        while path[-1] != source_id:
            path.append(parent[path[-1]])
        path.reverse()

        return Route(
            distance_km=dist[dest_id],
            path=tuple(self._locations[i].name for i in path),
            source=self.location_name(source_id),
            destination=self.location_name(dest_id),
        )

    def _check_id(self, location_id: int) -> None:
        if not 0 <= location_id < len(self._locations):
            raise NotFoundError("Location", location_id)


# ── Default city map ──────────────────────────────────────────────────

CITY_LOCATIONS: tuple[str, ...] = (
    "Warehouse",  # 0
    "City Center",  # 1
    "Service Station",  # 2
    "Highway Junction",  # 3
    "Delivery Hub",  # 4
    "Industrial Area",  # 5
)

CITY_ROADS: tuple[Road, ...] = (
    Road(0, 1, 15),
    Road(0, 2, 8),
    Road(1, 3, 12),
    Road(2, 3, 10),
    Road(3, 4, 18),
    Road(1, 4, 25),
    Road(2, 5, 14),
    Road(4, 5, 20),
)


def build_city_graph() -> RouteGraph:
    return RouteGraph(CITY_LOCATIONS, CITY_ROADS)


city_graph = build_city_graph()
