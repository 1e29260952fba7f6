"""
Map Viewport Controller

Owns the live map surface of a view and everything drawn on it. Each
(re)build is a RenderingSession holding the surface, the tagged layer
handles and the animation timers; disposing the session releases all three.

    UNINITIALIZED -> INITIALIZING -> READY -> DISPOSED
                          ^                      |
                          +---- origin/zoom -----+
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from flowdash import config, popups
from flowdash.animation import AnimationDriver, Scheduler, TimerHandle
from flowdash.geometry import build_arcs, bounds
from flowdash.models import Arc, DestinationPoint, GeoPoint, MapConfig, OriginPoint
from flowdash.surface import FoliumSurface, MapSurface

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[..., MapSurface]

LAYER_TAGS = ("base", "origin", "arc", "destination")


class ViewportState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISPOSED = "disposed"


class RenderingSession:
    """One rendering pass: a surface, its layers and its timers."""

    def __init__(self, surface: MapSurface, scheduler: Scheduler):
        self.surface = surface
        self.scheduler = scheduler
        self.alive = True
        self.layers: Dict[str, List[int]] = {tag: [] for tag in LAYER_TAGS}
        self.driver = AnimationDriver(scheduler, lambda: self.alive)
        self._one_shots: List[TimerHandle] = []

    def track(self, tag: str, layer: int) -> int:
        self.layers[tag].append(layer)
        return layer

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> None:
        def guarded():
            if self.alive:
                callback()

        self._one_shots.append(self.scheduler.call_later(delay_ms, guarded))

    def clear(self, *tags: str) -> None:
        for tag in tags:
            for layer in self.layers[tag]:
                self.surface.remove_layer(layer)
            self.layers[tag] = []

    def clear_arcs(self) -> None:
        self.driver.cancel("flow")
        self.clear("arc", "destination")

    def dispose(self) -> None:
        if not self.alive:
            return
        self.alive = False
        self.driver.cancel_all()
        for handle in self._one_shots:
            handle.cancel()
        self._one_shots = []
        try:
            self.clear(*LAYER_TAGS)
        finally:
            self.surface.release()


class MapViewportController:
    """
    Builds and maintains the map for one origin and its ranked destinations.

    Destination-only changes while READY swap the arc and destination layers
    in place; origin or zoom changes dispose the pass and build a new one.
    """

    def __init__(self, scheduler: Scheduler, map_config: Optional[MapConfig] = None,
                 surface_factory: SurfaceFactory = FoliumSurface):
        self.scheduler = scheduler
        self.config = map_config or MapConfig()
        self.surface_factory = surface_factory
        self.state = ViewportState.UNINITIALIZED
        self.origin: Optional[OriginPoint] = None
        self.destinations: tuple = ()
        self.session: Optional[RenderingSession] = None
        self.arcs: List[Arc] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    @property
    def surface(self) -> Optional[MapSurface]:
        return self.session.surface if self.session else None

    def _is_ready(self, session: Optional[RenderingSession]) -> bool:
        return (session is not None and session.alive and session is self.session
                and self.state is ViewportState.READY)

    # === INPUTS ===

    def set_origin(self, origin: OriginPoint) -> None:
        if origin == self.origin and self.state is ViewportState.READY:
            return
        self.origin = origin
        self._rebuild()

    def set_zoom(self, zoom: int) -> None:
        if zoom == self.config.zoom:
            return
        self.config.zoom = zoom
        if self.state in (ViewportState.INITIALIZING, ViewportState.READY):
            self._rebuild()

    def set_destinations(self, destinations: Sequence[DestinationPoint]) -> None:
        self.destinations = tuple(destinations)
        if self._is_ready(self.session):
            self._render_arcs(self.session)

    def update(self, origin: OriginPoint, destinations: Sequence[DestinationPoint]) -> None:
        """New origin and destination set in a single pass."""
        self.destinations = tuple(destinations)
        if origin != self.origin or not self._is_ready(self.session):
            self.origin = origin
            self._rebuild()
        else:
            self._render_arcs(self.session)

    def set_tile_style(self, style: str) -> None:
        if style not in config.TILE_STYLES:
            raise ValueError(f"unknown tile style {style!r}")
        self.config.tile_style = style
        session = self.session
        if self._is_ready(session):
            session.clear("base")
            session.track("base", session.surface.add_tile_layer(style))

    # === LIFECYCLE ===

    def _rebuild(self) -> None:
        if self.session is not None:
            self.dispose()
        self.initialize()

    def initialize(self) -> bool:
        """Build a new rendering pass. No-op while one is initializing or ready."""
        if self.state in (ViewportState.INITIALIZING, ViewportState.READY):
            logger.debug("Map already %s; ignoring initialize", self.state.value)
            return False
        if self.origin is None:
            logger.debug("No origin yet; map not initialized")
            return False

        self.state = ViewportState.INITIALIZING
        session = None
        try:
            surface = self.surface_factory(self.origin.location, zoom=self.config.zoom,
                                           flow_period_ms=self.config.flow_period_ms)
            session = RenderingSession(surface, self.scheduler)
            self.session = session
            session.track("base", surface.add_tile_layer(self.config.tile_style))
            self._add_origin(session)
        except Exception:
            logger.exception("Error initializing map")
            if session is not None:
                session.dispose()
            self.session = None
            self.state = ViewportState.UNINITIALIZED
            return False

        self.state = ViewportState.READY
        self._render_arcs(session)
        # Container may not have its final size yet
        session.call_later(config.INVALIDATE_DELAY_MS, session.surface.invalidate_size)
        logger.info("Map ready for %s", self.origin.label)
        return True

    def dispose(self) -> None:
        session, self.session = self.session, None
        self.arcs = []
        if session is not None:
            try:
                session.dispose()
            except Exception:
                logger.exception("Error removing map")
        self.state = ViewportState.DISPOSED

    # === DRAWING ===

    def _add_origin(self, session: RenderingSession) -> None:
        surface = session.surface
        origin = self.origin
        session.track("origin", surface.add_marker(
            origin.location,
            icon_html=popups.origin_icon_html(),
            popup_html=popups.origin_popup_html(origin),
        ))
        pulse = session.track("origin", surface.add_circle_marker(
            origin.location,
            radius=10,
            color=config.ORIGIN_COLOR,
            fill=True,
            fill_color=config.ORIGIN_FILL,
            fill_opacity=0.3,
            weight=2,
            opacity=0.5,
        ))
        session.track("origin", surface.add_circle(
            origin.location,
            radius_m=config.HIGHLIGHT_RADIUS_M,
            color=config.ORIGIN_COLOR,
            fill=True,
            fill_color=config.ORIGIN_FILL,
            fill_opacity=0.1,
        ))
        session.driver.start_pulse(surface, pulse, period_ms=self.config.pulse_period_ms)

    def _render_arcs(self, session: RenderingSession) -> None:
        if not self._is_ready(session):
            return
        session.clear_arcs()
        self.arcs = []
        if not self.config.show_destinations:
            return
        if not self.destinations:
            logger.info("No destinations found to display arcs")
            return

        surface = session.surface
        rendered = []
        for arc in build_arcs(self.origin.location, self.destinations):
            added = []
            try:
                line = surface.add_polyline(arc.points, color=arc.color, weight=arc.weight, opacity=0.8)
                added.append(line)
                added.append(surface.add_circle_marker(
                    arc.destination,
                    radius=arc.marker_radius,
                    popup_html=popups.destination_popup_html(arc.target, arc.color) if arc.target else None,
                    color="#ffffff",
                    fill=True,
                    fill_color=arc.color,
                    weight=2,
                    opacity=1,
                    fill_opacity=0.8,
                ))
                # flow timer only once both layers exist
                session.driver.start_flow(surface, line, arc.dash_length,
                                          period_ms=self.config.flow_period_ms)
            except Exception:
                name = arc.target.name if arc.target else arc.destination
                logger.exception("Error rendering arc for %s", name)
                for layer in added:
                    surface.remove_layer(layer)
                continue
            session.track("arc", added[0])
            session.track("destination", added[1])
            rendered.append(arc)

        self.arcs = rendered
        if rendered:
            self._fit(session, [self.origin.location] + [a.destination for a in rendered])

    def _fit(self, session: RenderingSession, points: List[GeoPoint]) -> None:
        try:
            session.surface.fit_bounds(bounds(points), self.config.fit_padding)
        except Exception:
            logger.exception("Error setting map bounds for %d points", len(points))
