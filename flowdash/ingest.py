"""
CSV Ingestion & Normalization

Fetches per-location CSV files and turns their rows into validated
DestinationPoint records. Two column conventions are accepted for
coordinates: KoordinatX/KoordinatY (locale decimals, e.g. "40,98") and
latitude/longitude.
"""
import io
import json
import logging
import math
import re
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
import requests

from flowdash import config
from flowdash.errors import FetchError, ParseError
from flowdash.models import DestinationPoint, GeoPoint, LocationDescriptor, OriginPoint

logger = logging.getLogger(__name__)

# Column conventions, in order of preference
COORDINATE_COLUMNS = [("KoordinatX", "KoordinatY"), ("latitude", "longitude")]
NAME_COLUMNS = ["place_name", "MusteriTabelaAdi"]
CATEGORY_COLUMNS = ["MusteriCesidi"]
ORIGIN_COLUMNS = [("lat", "lng"), ("Lat", "Lng")]

DEFAULT_NAME = "Unknown Location"
DEFAULT_CATEGORY = "Unspecified"

# Shown on the map when the location CSV cannot be fetched
FALLBACK_DESTINATIONS = [
    DestinationPoint("Kadıköy Çarşı", GeoPoint(40.9903, 29.0290), 120, "Cafe"),
    DestinationPoint("Bağdat Caddesi", GeoPoint(40.9650, 29.0630), 85, "Shopping"),
    DestinationPoint("Moda Sahili", GeoPoint(40.9822, 29.0250), 60, "Entertainment"),
]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_csv(text: str) -> List[dict]:
    """
    Parse header-row CSV text into row dicts.

    Numeric-looking columns come back as numbers, blank lines are skipped and
    missing cells are None.
    """
    if not text or not text.strip():
        return []
    try:
        df = pd.read_csv(io.StringIO(text), skip_blank_lines=True,
                         keep_default_na=False, na_values=[""])
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Malformed CSV: {e}") from e

    df = df.dropna(how="all")
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def _is_present(value) -> bool:
    """Cell has a usable value (None, empty strings, zero and NaN do not count)."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def parse_coordinate(value) -> Optional[float]:
    """Parse a coordinate that may use a comma decimal or carry stray quotes."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = str(value).strip().replace("'", "").replace('"', "").replace(",", ".")
        try:
            number = float(cleaned)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def parse_visitor_count(value) -> Optional[int]:
    """Leading integer of the value, like a lenient parseInt."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def _first_present(row: dict, columns: List[str], default: str) -> str:
    for column in columns:
        value = row.get(column)
        if _is_present(value):
            return str(value).strip()
    return default


def resolve_coordinates(row: dict) -> Optional[GeoPoint]:
    """Coordinates from the first populated column pair, or None if invalid."""
    for lat_col, lng_col in COORDINATE_COLUMNS:
        raw_lat, raw_lng = row.get(lat_col), row.get(lng_col)
        if _is_present(raw_lat) and _is_present(raw_lng):
            lat = parse_coordinate(raw_lat)
            lng = parse_coordinate(raw_lng)
            if lat is None or lng is None or not GeoPoint.is_valid(lat, lng):
                return None
            return GeoPoint(lat, lng)
    return None


def normalize_row(row: dict) -> Optional[DestinationPoint]:
    """Build a DestinationPoint from a raw row; None when the row is invalid."""
    location = resolve_coordinates(row)
    if location is None:
        return None

    visitors = parse_visitor_count(row.get("visitor_count"))
    if visitors is None or visitors <= 0:
        return None

    return DestinationPoint(
        name=_first_present(row, NAME_COLUMNS, DEFAULT_NAME),
        location=location,
        visitor_count=visitors,
        category=_first_present(row, CATEGORY_COLUMNS, DEFAULT_CATEGORY),
    )


def normalize_rows(rows: List[dict]) -> List[DestinationPoint]:
    destinations = []
    for row in rows:
        point = normalize_row(row)
        if point is not None:
            destinations.append(point)
    dropped = len(rows) - len(destinations)
    if dropped:
        logger.debug("Dropped %d invalid rows out of %d", dropped, len(rows))
    return destinations


def parse_origin(text: str, label: str) -> OriginPoint:
    """Read the single-row coordinates file of a location."""
    rows = parse_csv(text)
    if not rows:
        raise ParseError("Coordinates file has no rows")
    row = rows[0]
    for lat_col, lng_col in ORIGIN_COLUMNS:
        if _is_present(row.get(lat_col)) and _is_present(row.get(lng_col)):
            lat = parse_coordinate(row[lat_col])
            lng = parse_coordinate(row[lng_col])
            if lat is not None and lng is not None and GeoPoint.is_valid(lat, lng):
                return OriginPoint(GeoPoint(lat, lng), label)
            raise ParseError(f"Invalid origin coordinates: {row[lat_col]!r}, {row[lng_col]!r}")
    raise ParseError("Coordinates file needs lat/lng or Lat/Lng columns")


class DataSource:
    """
    Reads static assets laid out as <folder>/<file> under a data root.

    The root is either a local directory or a public base URL; with a URL
    every asset is fetched with a plain HTTP GET below <base>/data/.
    """

    def __init__(self, root: Union[str, Path, None] = None, timeout: float = config.REQUEST_TIMEOUT):
        if root is None:
            root = config.PUBLIC_URL or config.DATA_DIR
        self.timeout = timeout
        if isinstance(root, str) and root.startswith(("http://", "https://")):
            self.base_url = root.rstrip("/") + "/data"
            self.root = None
        else:
            self.base_url = None
            self.root = Path(root)

    def __repr__(self):
        return f"DataSource({self.base_url or self.root})"

    def locate(self, relative_path: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{relative_path}"
        return str(self.root / relative_path)

    def fetch_text(self, relative_path: str) -> str:
        target = self.locate(relative_path)
        if self.base_url:
            try:
                response = requests.get(target, timeout=self.timeout)
            except requests.RequestException as e:
                raise FetchError(target, reason=str(e)) from e
            if not response.ok:
                raise FetchError(target, status=response.status_code)
            return response.text

        return read_local_text(Path(target))

    def fetch_json(self, relative_path: str):
        text = self.fetch_text(relative_path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed JSON in {relative_path}: {e}") from e


def read_local_text(path: Path) -> str:
    """UTF-8 text of a local asset. Missing file -> FetchError, other encodings -> ParseError."""
    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"{path} is not UTF-8 encoded: {e}") from e
    except OSError as e:
        raise FetchError(str(path), reason=e.strerror or str(e)) from e


def load_rows(source: DataSource, location: LocationDescriptor) -> List[dict]:
    """Raw rows of a location's CSV. Raises FetchError / ParseError."""
    text = source.fetch_text(location.csv_path)
    rows = parse_csv(text)
    logger.info("Loaded %d rows for %s from %s", len(rows), location.name, location.csv_path)
    return rows


def load_destinations(source: DataSource, location: LocationDescriptor) -> List[DestinationPoint]:
    """
    Normalized destinations for a location.

    A fetch failure falls back to FALLBACK_DESTINATIONS; a parse failure
    gives an empty set so the map still renders its origin.
    """
    try:
        rows = load_rows(source, location)
    except FetchError as e:
        logger.warning("Error loading destination data: %s; using fallback destinations", e)
        return list(FALLBACK_DESTINATIONS)
    except ParseError as e:
        logger.error("Error parsing CSV for %s: %s", location.name, e)
        return []
    return normalize_rows(rows)


def load_origin(source: DataSource, location: LocationDescriptor) -> Optional[OriginPoint]:
    """Origin from the coordinates file, then from the descriptor itself."""
    try:
        return parse_origin(source.fetch_text(location.coordinates_path), location.display_name)
    except FetchError:
        logger.debug("No coordinates file for %s", location.name)
    except ParseError as e:
        logger.warning("Ignoring coordinates file for %s: %s", location.name, e)

    if location.has_coordinates:
        return OriginPoint(GeoPoint(float(location.latitude), float(location.longitude)),
                           location.display_name)
    logger.warning("No valid coordinates for %s", location.name)
    return None
