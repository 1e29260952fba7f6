"""
Flow Animation Driver

Periodic dash-offset updates that make each arc look like it is flowing from
the origin to its destination, plus the pulse on the origin marker. Timers
come from a Scheduler so the driver runs on any single-threaded event loop;
every callback re-checks that its rendering pass is still alive before it
touches the map surface.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Protocol

from flowdash import config

if TYPE_CHECKING:
    from flowdash.surface import MapSurface

logger = logging.getLogger(__name__)

PULSE_MIN_RADIUS = 10.0
PULSE_MAX_RADIUS = 25.0
PULSE_STEP = 0.5


class TimerHandle:
    """Cancellation handle for a scheduled callback."""

    def __init__(self):
        self.cancelled = False
        self._native = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._native is not None:
            self._native.cancel()
            self._native = None


class Scheduler(Protocol):
    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class EventLoopScheduler:
    """Scheduler on top of an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def fire():
            handle._native = None
            if not handle.cancelled:
                handle.cancelled = True
                callback()

        handle._native = self.loop.call_later(delay_ms / 1000.0, fire)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def fire():
            if handle.cancelled:
                return
            callback()
            if not handle.cancelled:
                handle._native = self.loop.call_later(interval_ms / 1000.0, fire)

        handle._native = self.loop.call_later(interval_ms / 1000.0, fire)
        return handle


class FlowAnimation:
    """Dash pattern (L, L) whose phase advances one unit per tick, modulo 2L."""

    def __init__(self, surface: MapSurface, layer, dash_length: float):
        self.surface = surface
        self.layer = layer
        self.dash_length = dash_length
        self.offset = 0

    @property
    def dash_pattern(self):
        return (self.dash_length, self.dash_length)

    def tick(self) -> None:
        self.offset = (self.offset + 1) % (2 * self.dash_length)
        self.surface.set_path_dash(self.layer, self.dash_pattern, self.offset)


class PulseAnimation:
    """Origin halo growing and shrinking between 10 and 25 px."""

    def __init__(self, surface: MapSurface, layer):
        self.surface = surface
        self.layer = layer
        self.radius = PULSE_MIN_RADIUS
        self.direction = 1

    @property
    def opacity(self):
        # (stroke, fill); brighter while expanding
        return (0.6, 0.3) if self.direction > 0 else (0.3, 0.15)

    def tick(self) -> None:
        self.radius += PULSE_STEP * self.direction
        if self.radius >= PULSE_MAX_RADIUS:
            self.radius = PULSE_MAX_RADIUS
            self.direction = -1
        elif self.radius <= PULSE_MIN_RADIUS:
            self.radius = PULSE_MIN_RADIUS
            self.direction = 1
        stroke, fill = self.opacity
        self.surface.set_circle_style(self.layer, radius=self.radius, opacity=stroke, fill_opacity=fill)


class AnimationDriver:
    """
    Owns every timer of one rendering pass.

    Timers are grouped ("flow", "pulse") so the arcs of a pass can be
    replaced without stopping the origin pulse.
    """

    def __init__(self, scheduler: Scheduler, is_alive: Callable[[], bool]):
        self.scheduler = scheduler
        self.is_alive = is_alive
        self._timers: Dict[str, List[TimerHandle]] = {}
        self.animations: Dict[str, list] = {}

    def _schedule(self, group: str, period_ms: float, animation) -> TimerHandle:
        handle: Optional[TimerHandle] = None

        def step():
            if not self.is_alive():
                handle.cancel()
                return
            try:
                animation.tick()
            except Exception:
                logger.exception("Animation tick failed; stopping timer")
                handle.cancel()

        handle = self.scheduler.call_every(period_ms, step)
        self._timers.setdefault(group, []).append(handle)
        self.animations.setdefault(group, []).append(animation)
        return handle

    def start_flow(self, surface: MapSurface, layer, dash_length: float,
                   period_ms: float = config.FLOW_PERIOD_MS) -> FlowAnimation:
        animation = FlowAnimation(surface, layer, dash_length)
        surface.set_path_dash(layer, animation.dash_pattern, animation.offset)
        self._schedule("flow", period_ms, animation)
        return animation

    def start_pulse(self, surface: MapSurface, layer,
                    period_ms: float = config.PULSE_PERIOD_MS) -> PulseAnimation:
        animation = PulseAnimation(surface, layer)
        self._schedule("pulse", period_ms, animation)
        return animation

    def cancel(self, group: str) -> None:
        for handle in self._timers.pop(group, []):
            handle.cancel()
        self.animations.pop(group, None)

    def cancel_all(self) -> None:
        for group in list(self._timers):
            self.cancel(group)

    @property
    def active_count(self) -> int:
        return sum(1 for handles in self._timers.values() for h in handles if not h.cancelled)
