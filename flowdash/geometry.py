"""
Arc Geometry Engine

Computes one quadratic Bezier "flow arc" per destination. All math happens in
raw lat/lng degree space: the curve is a visual arc, not a geodesic.
"""
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from flowdash import config
from flowdash.models import Arc, DestinationPoint, GeoPoint

logger = logging.getLogger(__name__)

CURVE_SAMPLES = 21  # t = 0, 0.05, ..., 1.0
CONTROL_HEIGHT_RATIO = 0.2


def normalized_value(visitor_count: float, max_visitor_count: float) -> float:
    """Visual intensity in [0.3, 1.0] relative to the busiest destination."""
    if max_visitor_count <= 0:
        raise ValueError("max_visitor_count must be positive")
    return 0.3 + (visitor_count / max_visitor_count) * 0.7


def control_point(origin: GeoPoint, destination: GeoPoint) -> Optional[GeoPoint]:
    """
    Control point lifted off the chord midpoint by 20% of the chord length,
    along the chord rotated by 90 degrees. None for coincident points.
    """
    start = np.array([origin.lat, origin.lng], dtype=float)
    end = np.array([destination.lat, destination.lng], dtype=float)
    delta = end - start
    distance = float(np.hypot(delta[0], delta[1]))
    if distance == 0:
        return None

    mid = (start + end) / 2
    perp = np.array([-delta[1], delta[0]]) / distance
    control = mid + perp * (distance * CONTROL_HEIGHT_RATIO)
    return GeoPoint(float(control[0]), float(control[1]))


def bezier_point(p0: GeoPoint, p1: GeoPoint, p2: GeoPoint, t: float) -> GeoPoint:
    u = 1 - t
    lat = u * u * p0.lat + 2 * u * t * p1.lat + t * t * p2.lat
    lng = u * u * p0.lng + 2 * u * t * p1.lng + t * t * p2.lng
    return GeoPoint(lat, lng)


def sample_curve(p0: GeoPoint, p1: GeoPoint, p2: GeoPoint, samples: int = CURVE_SAMPLES) -> Tuple[GeoPoint, ...]:
    t = np.linspace(0.0, 1.0, samples)[:, None]
    u = 1 - t
    points = (u ** 2) * np.array([p0.lat, p0.lng]) \
        + (2 * u * t) * np.array([p1.lat, p1.lng]) \
        + (t ** 2) * np.array([p2.lat, p2.lng])
    return tuple(GeoPoint(float(lat), float(lng)) for lat, lng in points)


def build_arc(origin: GeoPoint, destination: GeoPoint, visitor_count: float,
              max_visitor_count: float, color_index: int,
              target: Optional[DestinationPoint] = None) -> Optional[Arc]:
    """
    Build the arc for one destination.

    Returns None when the destination coincides with the origin; there is no
    direction to bend the curve in.
    """
    normalized = normalized_value(visitor_count, max_visitor_count)
    control = control_point(origin, destination)
    if control is None:
        return None

    palette = config.ARC_PALETTE
    return Arc(
        origin=origin,
        destination=destination,
        control_point=control,
        points=sample_curve(origin, control, destination),
        color=palette[color_index % len(palette)],
        weight=2 + normalized * 3,
        marker_radius=5 + normalized * 5,
        dash_length=5 + normalized * 5,
        normalized=normalized,
        rank=color_index,
        target=target,
    )


def build_arcs(origin: GeoPoint, destinations: Sequence[DestinationPoint]) -> List[Arc]:
    """
    Arcs for an already ranked destination list.

    A destination that fails is logged and skipped; the rest still render.
    """
    if not destinations:
        return []

    max_visitors = max(d.visitor_count for d in destinations)
    arcs = []
    for index, dest in enumerate(destinations):
        try:
            arc = build_arc(origin, dest.location, dest.visitor_count, max_visitors, index, target=dest)
        except Exception:
            logger.exception("Error creating arc for %s", dest.name)
            continue
        if arc is None:
            logger.info("Skipping arc for %s: same position as origin", dest.name)
            continue
        arcs.append(arc)
    return arcs


def bounds(points: Iterable[GeoPoint]) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """((south, west), (north, east)) of the points."""
    points = list(points)
    if not points:
        raise ValueError("cannot compute bounds of an empty point set")
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return (min(lats), min(lngs)), (max(lats), max(lngs))
