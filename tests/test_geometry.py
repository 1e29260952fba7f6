import pytest

from flowdash import config, geometry
from flowdash.geometry import bounds, build_arc, build_arcs, control_point, normalized_value
from flowdash.models import DestinationPoint, GeoPoint

ORIGIN = GeoPoint(0.0, 0.0)
EAST = GeoPoint(0.0, 10.0)


def test_normalized_value_range():
    assert normalized_value(100, 100) == pytest.approx(1.0)
    assert normalized_value(0, 100) == pytest.approx(0.3)
    assert normalized_value(50, 100) == pytest.approx(0.65)


def test_normalized_value_needs_positive_max():
    with pytest.raises(ValueError):
        normalized_value(1, 0)


def test_control_point_is_lifted_to_the_left_of_the_chord():
    assert control_point(ORIGIN, EAST) == GeoPoint(pytest.approx(-2.0), pytest.approx(5.0))


def test_control_point_coincident():
    assert control_point(ORIGIN, ORIGIN) is None


def test_arc_samples_and_endpoints():
    arc = build_arc(ORIGIN, EAST, 100, 100, 0)
    assert len(arc.points) == geometry.CURVE_SAMPLES == 21
    assert arc.points[0] == ORIGIN
    assert arc.points[-1] == EAST
    midpoint = arc.points[10]
    assert midpoint.lat == pytest.approx(-1.0)
    assert midpoint.lng == pytest.approx(5.0)


def test_arc_styling_scales_with_visitors():
    busiest = build_arc(ORIGIN, EAST, 100, 100, 0)
    assert busiest.weight == pytest.approx(5.0)
    assert busiest.marker_radius == pytest.approx(10.0)
    assert busiest.dash_length == pytest.approx(10.0)

    quiet = build_arc(ORIGIN, EAST, 0, 100, 1)
    assert quiet.weight == pytest.approx(2.9)
    assert quiet.marker_radius == pytest.approx(6.5)
    assert quiet.dash_length == pytest.approx(6.5)


def test_arc_colour_cycles_through_palette():
    palette = config.ARC_PALETTE
    colors = [build_arc(ORIGIN, EAST, 1, 1, i).color for i in range(len(palette) + 2)]
    assert colors == palette + palette[:2]


def test_coincident_destination_yields_no_arc():
    assert build_arc(ORIGIN, ORIGIN, 5, 10, 0) is None


def test_build_arcs_uses_rank_and_max(destinations, origin):
    arcs = build_arcs(origin.location, destinations)
    assert [a.rank for a in arcs] == [0, 1, 2]
    assert [a.target.name for a in arcs] == ["Nero Moda", "Pub X", "Mall Y Place"]
    assert arcs[0].normalized == pytest.approx(1.0)
    assert arcs[2].normalized == pytest.approx(0.3 + 100 / 209 * 0.7)


def test_build_arcs_empty():
    assert build_arcs(ORIGIN, []) == []


def test_build_arcs_skips_coincident(origin, destinations):
    same_place = DestinationPoint("Here", origin.location, 500)
    arcs = build_arcs(origin.location, [same_place] + destinations)
    assert [a.target.name for a in arcs] == ["Nero Moda", "Pub X", "Mall Y Place"]
    # colour index follows the input position, not the rendered position
    assert arcs[0].color == config.ARC_PALETTE[1]


def test_build_arcs_isolates_failures(monkeypatch, origin, destinations):
    real_build_arc = geometry.build_arc

    def flaky(o, d, visitors, max_visitors, index, target=None):
        if target.name == "Pub X":
            raise RuntimeError("boom")
        return real_build_arc(o, d, visitors, max_visitors, index, target=target)

    monkeypatch.setattr(geometry, "build_arc", flaky)
    arcs = build_arcs(origin.location, destinations)
    assert [a.target.name for a in arcs] == ["Nero Moda", "Mall Y Place"]


def test_arc_to_dict(origin, destinations):
    data = build_arcs(origin.location, destinations[:1])[0].to_dict()
    assert data["rank"] == 0
    assert data["color"] == config.ARC_PALETTE[0]
    assert len(data["points"]) == 21
    assert data["destination"]["name"] == "Nero Moda"
    assert data["destination"]["visitorCount"] == 209


def test_bounds():
    points = [GeoPoint(1, 5), GeoPoint(-2, 3), GeoPoint(4, -1)]
    assert bounds(points) == ((-2, -1), (4, 5))


def test_bounds_empty():
    with pytest.raises(ValueError):
        bounds([])
