"""
Value types shared by the ingestion, geometry and map layers.
"""
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

from flowdash import config


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    @staticmethod
    def is_valid(lat, lng) -> bool:
        """True when both components are finite and inside the lat/lng ranges."""
        try:
            lat = float(lat)
            lng = float(lng)
        except (TypeError, ValueError):
            return False
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        return abs(lat) <= 90 and abs(lng) <= 180

    def as_list(self) -> list:
        return [self.lat, self.lng]


@dataclass(frozen=True)
class DestinationPoint:
    name: str
    location: GeoPoint
    visitor_count: int
    category: str = "Unspecified"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "lat": self.location.lat,
            "lng": self.location.lng,
            "visitorCount": self.visitor_count,
            "type": self.category,
        }


@dataclass(frozen=True)
class OriginPoint:
    location: GeoPoint
    label: str


@dataclass(frozen=True)
class Arc:
    """One rendered flow arc from the origin to a destination."""
    origin: GeoPoint
    destination: GeoPoint
    control_point: GeoPoint
    points: Tuple[GeoPoint, ...]
    color: str
    weight: float
    marker_radius: float
    dash_length: float
    normalized: float
    rank: int = 0
    target: Optional[DestinationPoint] = None

    def to_dict(self) -> dict:
        data = {
            "rank": self.rank,
            "color": self.color,
            "weight": round(self.weight, 3),
            "markerRadius": round(self.marker_radius, 3),
            "dashLength": round(self.dash_length, 3),
            "normalized": round(self.normalized, 4),
            "control": self.control_point.as_list(),
            "points": [p.as_list() for p in self.points],
        }
        if self.target is not None:
            data["destination"] = self.target.to_dict()
        return data


@dataclass(frozen=True)
class LocationDescriptor:
    name: str
    display_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    folder_path: Optional[str] = None
    file: Optional[str] = None

    @property
    def folder(self) -> str:
        return self.folder_path or f"BigChefs{self.name}"

    @property
    def data_file(self) -> str:
        return self.file or f"amir_final_{self.name.lower()}.csv"

    @property
    def csv_path(self) -> str:
        return f"{self.folder}/{self.data_file}"

    @property
    def coordinates_path(self) -> str:
        return f"{self.folder}/coordinates.csv"

    @property
    def has_coordinates(self) -> bool:
        return (self.latitude is not None and self.longitude is not None
                and GeoPoint.is_valid(self.latitude, self.longitude))

    @classmethod
    def from_dict(cls, data: dict) -> "LocationDescriptor":
        name = data.get("name")
        if not name:
            raise ValueError("location descriptor without a name")
        return cls(
            name=str(name),
            display_name=str(data.get("displayName") or name),
            latitude=_optional_float(data.get("latitude")),
            longitude=_optional_float(data.get("longitude")),
            folder_path=data.get("folderPath"),
            file=data.get("file"),
        )

    def to_dict(self) -> dict:
        data = {"name": self.name, "displayName": self.display_name}
        if self.latitude is not None and self.longitude is not None:
            data["latitude"] = self.latitude
            data["longitude"] = self.longitude
        if self.folder_path:
            data["folderPath"] = self.folder_path
        if self.file:
            data["file"] = self.file
        return data


@dataclass
class MapConfig:
    """Knobs for one map view."""
    tile_style: str = config.DEFAULT_TILE_STYLE
    max_arcs: int = config.DEFAULT_MAX_ARCS
    zoom: int = config.DEFAULT_ZOOM
    show_destinations: bool = True
    flow_period_ms: int = config.FLOW_PERIOD_MS
    pulse_period_ms: int = config.PULSE_PERIOD_MS
    fit_padding: Tuple[int, int] = field(default=config.FIT_PADDING)

    def __post_init__(self):
        if self.tile_style not in config.TILE_STYLES:
            raise ValueError(f"unknown tile style {self.tile_style!r}")


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return None
