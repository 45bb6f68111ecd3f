"""Unit tests for the shortest-route computation."""

import pytest

from fleet.domain.errors import NoRouteFound, NotFoundError, ValidationError
from fleet.domain.routing import Road, RouteGraph, build_city_graph, city_graph


class TestCityMap:
    def test_warehouse_to_delivery_hub(self):
        route = city_graph.shortest_path(0, 4)
        assert route.distance_km == 36
        assert route.path == (
            "Warehouse",
            "Service Station",
            "Highway Junction",
            "Delivery Hub",
        )
        assert route.source == "Warehouse"
        assert route.destination == "Delivery Hub"

    def test_route_is_symmetric(self):
        there = city_graph.shortest_path(0, 4)
        back = city_graph.shortest_path(4, 0)
        assert there.distance_km == back.distance_km
        assert back.path == tuple(reversed(there.path))

    def test_same_source_and_destination(self):
        route = city_graph.shortest_path(3, 3)
        assert route.distance_km == 0
        assert route.path == ("Highway Junction",)

    def test_direct_road_beats_detour(self):
        # 0-2 is 8 km; via City Center it would be far longer
        route = city_graph.shortest_path(0, 2)
        assert route.distance_km == 8
        assert route.path == ("Warehouse", "Service Station")

    def test_industrial_area_to_city_center(self):
        # 5-2-3-1 = 14 + 10 + 12 = 36, 5-2-0-1 = 14 + 8 + 15 = 37
        route = city_graph.shortest_path(5, 1)
        assert route.distance_km == 36
        assert route.path[0] == "Industrial Area"
        assert route.path[-1] == "City Center"

    def test_locations_are_listed_in_id_order(self):
        names = [loc.name for loc in city_graph.locations]
        assert names[0] == "Warehouse"
        assert names[5] == "Industrial Area"
        assert len(names) == 6

    def test_builds_independent_graphs(self):
        assert build_city_graph().shortest_path(0, 4) == city_graph.shortest_path(0, 4)


class TestErrors:
    def test_unknown_source_raises_not_found(self):
        with pytest.raises(NotFoundError):
            city_graph.shortest_path(42, 0)

    def test_unknown_destination_raises_not_found(self):
        with pytest.raises(NotFoundError):
            city_graph.shortest_path(0, -1)

    def test_unreachable_destination(self):
        graph = RouteGraph(["A", "B", "Island"], [Road(0, 1, 5)])
        with pytest.raises(NoRouteFound, match="Island"):
            graph.shortest_path(0, 2)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            RouteGraph(["A", "B"], [Road(0, 1, -3)])

    def test_road_to_unknown_location_rejected(self):
        with pytest.raises(NotFoundError):
            RouteGraph(["A", "B"], [Road(0, 7, 3)])


class TestDeterminism:
    def test_equal_length_paths_prefer_lowest_id(self):
        # A-B-D and A-C-D are both 2 km long
        graph = RouteGraph(
            ["A", "B", "C", "D"],
            [Road(0, 1, 1), Road(0, 2, 1), Road(1, 3, 1), Road(2, 3, 1)],
        )
        for _ in range(5):
            route = graph.shortest_path(0, 3)
            assert route.path == ("A", "B", "D")
            assert route.distance_km == 2

    def test_zero_length_road(self):
        graph = RouteGraph(["A", "B", "C"], [Road(0, 1, 0), Road(1, 2, 4)])
        assert graph.shortest_path(0, 2).distance_km == 4
