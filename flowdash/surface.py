"""
Map rendering surfaces.

The viewport controller talks to a MapSurface; FoliumSurface keeps the
layers as plain records and turns them into a Leaflet page with folium on
demand, so a snapshot always reflects the latest animation state.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import folium
from folium.plugins import AntPath

from flowdash import config
from flowdash.models import GeoPoint

logger = logging.getLogger(__name__)

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]


class SurfaceReleasedError(RuntimeError):
    """A released surface was mutated."""


class MapSurface(Protocol):
    def add_tile_layer(self, style: str) -> int: ...

    def add_marker(self, location: GeoPoint, icon_html: str, popup_html: Optional[str] = None) -> int: ...

    def add_circle_marker(self, location: GeoPoint, radius: float, **style) -> int: ...

    def add_circle(self, location: GeoPoint, radius_m: float, **style) -> int: ...

    def add_polyline(self, points: Sequence[GeoPoint], **style) -> int: ...

    def remove_layer(self, layer: int) -> None: ...

    def set_path_dash(self, layer: int, pattern: Tuple[float, float], offset: float) -> None: ...

    def set_circle_style(self, layer: int, **style) -> None: ...

    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None: ...

    def invalidate_size(self) -> None: ...

    def release(self) -> None: ...


@dataclass
class LayerRecord:
    kind: str
    location: Optional[GeoPoint] = None
    points: Tuple[GeoPoint, ...] = ()
    style: dict = field(default_factory=dict)
    popup_html: Optional[str] = None
    icon_html: Optional[str] = None


class FoliumSurface:
    """MapSurface rendered to HTML with folium."""

    def __init__(self, center: GeoPoint, zoom: int = config.DEFAULT_ZOOM,
                 flow_period_ms: int = config.FLOW_PERIOD_MS):
        self.center = center
        self.zoom = zoom
        self.flow_period_ms = flow_period_ms
        self.layers: Dict[int, LayerRecord] = {}
        self.view_bounds: Optional[Bounds] = None
        self.padding: Tuple[int, int] = config.FIT_PADDING
        self.invalidations = 0
        self.released = False
        self._ids = itertools.count(1)

    def _check(self):
        if self.released:
            raise SurfaceReleasedError("map surface has been released")

    def _add(self, record: LayerRecord) -> int:
        self._check()
        layer_id = next(self._ids)
        self.layers[layer_id] = record
        return layer_id

    # === LAYERS ===

    def add_tile_layer(self, style: str) -> int:
        if style not in config.TILE_STYLES:
            raise ValueError(f"unknown tile style {style!r}")
        return self._add(LayerRecord("tiles", style={"style": style}))

    def add_marker(self, location: GeoPoint, icon_html: str, popup_html: Optional[str] = None) -> int:
        return self._add(LayerRecord("marker", location=location, icon_html=icon_html, popup_html=popup_html))

    def add_circle_marker(self, location: GeoPoint, radius: float, popup_html: Optional[str] = None, **style) -> int:
        style["radius"] = radius
        return self._add(LayerRecord("circle_marker", location=location, style=style, popup_html=popup_html))

    def add_circle(self, location: GeoPoint, radius_m: float, **style) -> int:
        style["radius"] = radius_m
        return self._add(LayerRecord("circle", location=location, style=style))

    def add_polyline(self, points: Sequence[GeoPoint], **style) -> int:
        return self._add(LayerRecord("polyline", points=tuple(points), style=style))

    def remove_layer(self, layer: int) -> None:
        self._check()
        if self.layers.pop(layer, None) is None:
            logger.debug("Layer %s was already removed", layer)

    # === STYLE UPDATES ===

    def set_path_dash(self, layer: int, pattern: Tuple[float, float], offset: float) -> None:
        self._check()
        record = self.layers[layer]
        record.style["dash_array"] = list(pattern)
        record.style["dash_offset"] = offset

    def set_circle_style(self, layer: int, **style) -> None:
        self._check()
        self.layers[layer].style.update(style)

    # === VIEWPORT ===

    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None:
        self._check()
        (south, west), (north, east) = bounds
        if south == north and west == east:
            raise ValueError("bounds collapse to a single point")
        self.view_bounds = bounds
        self.padding = padding

    def invalidate_size(self) -> None:
        self._check()
        self.invalidations += 1

    def release(self) -> None:
        self.layers.clear()
        self.released = True

    def layers_of(self, kind: str) -> List[LayerRecord]:
        return [r for r in self.layers.values() if r.kind == kind]

    # === RENDERING ===

    def to_folium(self) -> folium.Map:
        self._check()
        m = folium.Map(
            location=self.center.as_list(),
            zoom_start=self.zoom,
            tiles=None,
            control_scale=True,
        )

        active_style = None
        for record in self.layers.values():
            if record.kind == "tiles":
                active_style = record.style["style"]

        # Both styles are offered; the active one is drawn first and shown
        if active_style is not None:
            for style in sorted(config.TILE_STYLES, key=lambda s: s != active_style):
                folium.TileLayer(
                    tiles=config.TILE_STYLES[style],
                    attr=config.TILE_ATTRIBUTION,
                    name=style.title(),
                    subdomains="abcd",
                    max_zoom=config.TILE_MAX_ZOOM,
                    overlay=False,
                    show=style == active_style,
                ).add_to(m)

        for record in self.layers.values():
            self._render_layer(m, record)

        if active_style is not None:
            folium.LayerControl(position="topright", collapsed=False).add_to(m)

        if self.view_bounds is not None:
            (south, west), (north, east) = self.view_bounds
            m.fit_bounds([[south, west], [north, east]], padding=self.padding)
        return m

    def _render_layer(self, m: folium.Map, record: LayerRecord) -> None:
        style = dict(record.style)
        popup = folium.Popup(record.popup_html, max_width=300) if record.popup_html else None

        if record.kind == "marker":
            folium.Marker(
                location=record.location.as_list(),
                icon=folium.DivIcon(html=record.icon_html, icon_size=(22, 22),
                                    icon_anchor=(11, 11), class_name="custom-div-icon"),
                popup=popup,
            ).add_to(m)
        elif record.kind == "circle_marker":
            folium.CircleMarker(location=record.location.as_list(), popup=popup, **style).add_to(m)
        elif record.kind == "circle":
            folium.Circle(location=record.location.as_list(), **style).add_to(m)
        elif record.kind == "polyline":
            locations = [p.as_list() for p in record.points]
            pattern = style.pop("dash_array", None)
            style.pop("dash_offset", None)
            if pattern:
                # The browser keeps the flow going: one dash cycle per 2L ticks
                AntPath(
                    locations=locations,
                    dash_array=[round(v, 2) for v in pattern],
                    delay=int(self.flow_period_ms * 2 * pattern[0]),
                    pulse_color="#ffffff",
                    **style,
                ).add_to(m)
            else:
                folium.PolyLine(locations=locations, **style).add_to(m)

    def render_html(self) -> str:
        return self.to_folium().get_root().render()
