"""
Destination Selector: ranks destinations by visitor count.
"""
from typing import Iterable, List

from flowdash import config
from flowdash.models import DestinationPoint


def select(destinations: Iterable[DestinationPoint], max_arcs: int = config.DEFAULT_MAX_ARCS) -> List[DestinationPoint]:
    """
    Top destinations by visitor count, highest first.

    sorted() is stable, so destinations with equal counts keep their input
    order and repeated calls give identical results.
    """
    if max_arcs <= 0:
        return []
    ranked = sorted(destinations, key=lambda d: d.visitor_count, reverse=True)
    return ranked[:max_arcs]
