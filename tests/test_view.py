import asyncio
import time

import pytest

from flowdash import config, ingest
from flowdash.ingest import DataSource
from flowdash.models import LocationDescriptor, MapConfig
from flowdash.view import LocationMapView, render_location_map
from flowdash.viewport import MapViewportController, ViewportState

from conftest import SpySurface

MODA = LocationDescriptor("Moda", "Big Chefs Moda", folder_path="BigChefsModa", file="amir_final_moda.csv")
TARABYA = LocationDescriptor("Tarabya", "Big Chefs Tarabya", folder_path="BigChefsTarabya",
                             file="tarabya_data.csv")


def make_view(data_dir, scheduler, map_config=None):
    controller = MapViewportController(scheduler, map_config, surface_factory=SpySurface)
    return LocationMapView(DataSource(data_dir), controller)


def test_show_draws_ranked_destinations(data_dir, scheduler, spy_surfaces):
    view = make_view(data_dir, scheduler)
    assert asyncio.run(view.show(MODA)) is True
    assert view.controller.state is ViewportState.READY
    assert [d.visitor_count for d in view.destinations] == [209, 179, 100]
    assert len(view.controller.surface.layers_of("polyline")) == 3


def test_max_arcs_limits_arcs(data_dir, scheduler, spy_surfaces):
    view = make_view(data_dir, scheduler, MapConfig(max_arcs=2))
    asyncio.run(view.show(MODA))
    arcs = view.controller.arcs
    assert [a.target.name for a in arcs] == ["Nero Moda", "Pub X"]
    assert [a.color for a in arcs] == config.ARC_PALETTE[:2]


def test_missing_csv_uses_fallback_destinations(data_dir, scheduler, spy_surfaces):
    ghost = LocationDescriptor("Ghost", "Ghost Kitchen", 40.99, 29.03)
    view = make_view(data_dir, scheduler)
    assert asyncio.run(view.show(ghost)) is True
    assert sorted(d.name for d in view.destinations) == sorted(d.name for d in ingest.FALLBACK_DESTINATIONS)


def test_location_without_coordinates_is_not_drawn(data_dir, scheduler, spy_surfaces):
    view = make_view(data_dir, scheduler)
    asyncio.run(view.show(MODA))
    first = view.controller.surface

    assert asyncio.run(view.show(TARABYA)) is False
    assert view.controller.state is ViewportState.DISPOSED
    assert first.released
    assert view.destinations == []


def test_stale_result_is_discarded(data_dir, scheduler, spy_surfaces):
    class SlowModaView(LocationMapView):
        def _load(self, location):
            if location.name == "Moda":
                time.sleep(0.2)
            return super()._load(location)

    tarabya = LocationDescriptor("Tarabya", "Big Chefs Tarabya", 41.141, 29.055,
                                 folder_path="BigChefsTarabya", file="tarabya_data.csv")
    controller = MapViewportController(scheduler, surface_factory=SpySurface)
    view = SlowModaView(DataSource(data_dir), controller)

    async def switch():
        return await asyncio.gather(view.show(MODA), view.show(tarabya))

    moda_drawn, tarabya_drawn = asyncio.run(switch())
    assert moda_drawn is False
    assert tarabya_drawn is True
    assert view.location is tarabya
    assert [d.name for d in view.destinations] == ["Sahil", "Marina"]
    assert controller.origin.label == "Big Chefs Tarabya"
    assert len(spy_surfaces) == 1


def test_close_discards_inflight_load(data_dir, scheduler, spy_surfaces):
    view = make_view(data_dir, scheduler)

    async def show_then_close():
        task = asyncio.ensure_future(view.show(MODA))
        await asyncio.sleep(0)
        view.close()
        return await task

    assert asyncio.run(show_then_close()) is False
    assert spy_surfaces == []
    assert view.controller.state is ViewportState.DISPOSED


def test_hidden_destinations_skip_csv(data_dir, scheduler, spy_surfaces, monkeypatch):
    def unexpected(*args):
        raise AssertionError("destination CSV should not be read")

    monkeypatch.setattr(ingest, "load_destinations", unexpected)
    view = make_view(data_dir, scheduler, MapConfig(show_destinations=False))
    assert asyncio.run(view.show(MODA)) is True
    assert view.destinations == []


def test_render_location_map_html(data_dir):
    html = render_location_map(DataSource(data_dir), MODA)
    assert "antPath" in html
    assert "basemaps.cartocdn.com/light_all" in html
    assert "Big Chefs Moda" in html
    assert "Nero Moda" in html


def test_render_location_map_without_coordinates(data_dir):
    assert render_location_map(DataSource(data_dir), TARABYA) is None


@pytest.mark.parametrize("style", ["light", "dark"])
def test_render_location_map_styles(data_dir, style):
    html = render_location_map(DataSource(data_dir), MODA, MapConfig(tile_style=style, max_arcs=1))
    assert f"{style}_all" in html
    assert html.count("antPath(") == 1
