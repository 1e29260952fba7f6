"""
Location map view: loads a location's data and hands it to the viewport.
"""
import asyncio
import logging
from typing import List, Optional

from flowdash import ingest
from flowdash.animation import EventLoopScheduler
from flowdash.ingest import DataSource
from flowdash.models import DestinationPoint, LocationDescriptor, MapConfig, OriginPoint
from flowdash.selector import select
from flowdash.viewport import MapViewportController, ViewportState

logger = logging.getLogger(__name__)


class LocationMapView:
    """
    Hosts one MapViewportController.

    Loads run off the event loop and may finish out of order; every show()
    takes a new request token and a result is applied only while its token is
    still the latest.
    """

    def __init__(self, source: DataSource, controller: MapViewportController):
        self.source = source
        self.controller = controller
        self.location: Optional[LocationDescriptor] = None
        self.destinations: List[DestinationPoint] = []
        self._token = 0

    @property
    def current_token(self) -> int:
        return self._token

    def _load(self, location: LocationDescriptor):
        origin = ingest.load_origin(self.source, location)
        destinations = []
        if self.controller.config.show_destinations:
            destinations = ingest.load_destinations(self.source, location)
        return origin, destinations

    async def show(self, location: LocationDescriptor) -> bool:
        """Load and draw a location. False if superseded or not drawable."""
        self._token += 1
        token = self._token
        logger.info("Fetching destinations for: %s", location.name)

        loop = asyncio.get_running_loop()
        origin, destinations = await loop.run_in_executor(None, self._load, location)

        if token != self._token:
            logger.info("Discarding stale data for %s (request %d, current %d)",
                        location.name, token, self._token)
            return False
        return self.apply(location, origin, destinations)

    def apply(self, location: LocationDescriptor, origin: Optional[OriginPoint],
              destinations: List[DestinationPoint]) -> bool:
        if origin is None:
            logger.warning("Cannot draw %s without coordinates", location.name)
            self.controller.dispose()
            self.location = location
            self.destinations = []
            return False

        self.location = location
        self.destinations = select(destinations, self.controller.config.max_arcs)
        logger.info("Processed destinations: %d", len(self.destinations))
        self.controller.update(origin, self.destinations)
        return self.controller.state is ViewportState.READY

    def close(self) -> None:
        self._token += 1
        self.controller.dispose()


async def _render(source: DataSource, location: LocationDescriptor, map_config: MapConfig) -> Optional[str]:
    controller = MapViewportController(EventLoopScheduler(), map_config)
    view = LocationMapView(source, controller)
    try:
        if not await view.show(location):
            return None
        return controller.surface.render_html()
    finally:
        view.close()


def render_location_map(source: DataSource, location: LocationDescriptor,
                        map_config: Optional[MapConfig] = None) -> Optional[str]:
    """Run one full map lifecycle and return the page, or None without coordinates."""
    return asyncio.run(_render(source, location, map_config or MapConfig()))
