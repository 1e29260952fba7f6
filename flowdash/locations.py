"""
Location discovery.

Each sub-folder of the data directory is one restaurant location holding its
customer-flow CSV (and optionally a coordinates.csv). scan_data_dir() builds
the descriptors that generate_locations.py writes to locations.json; the app
reads that file back with load_locations().
"""
import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Union

from flowdash import ingest
from flowdash.errors import FetchError, ParseError
from flowdash.ingest import DataSource
from flowdash.models import LocationDescriptor

logger = logging.getLogger(__name__)

LOCATIONS_FILE = "locations.json"
BRAND_PREFIX = "BigChefs"

# Used when locations.json is missing or unreadable
DEFAULT_LOCATIONS = [
    LocationDescriptor("Moda", "Big Chefs Moda", 40.9830, 29.0262,
                       folder_path="BigChefsModa", file="amir_final_moda.csv"),
    LocationDescriptor("Tarabya", "Big Chefs Tarabya", 41.1410, 29.0550,
                       folder_path="BigChefsTarabya", file="amir_final_tarabya.csv"),
    LocationDescriptor("TheTownhouse", "The Townhouse", 41.0766, 29.0250,
                       folder_path="TheTownhouse", file="amir_final_thetownhouse.csv"),
]


def display_name_for(folder_name: str) -> tuple:
    """(name, display name) for a data folder."""
    if folder_name.startswith(BRAND_PREFIX):
        name = folder_name[len(BRAND_PREFIX):]
        return name, f"Big Chefs {name}"
    # Space before capitals: "TheTownhouse" -> "The Townhouse"
    display = re.sub(r"([A-Z])", r" \1", folder_name).strip()
    display = display[:1].upper() + display[1:]
    return folder_name, display


def find_data_file(folder: Path, name: str) -> str:
    """Pick the CSV holding the location's destinations."""
    candidates = [
        f"amir_final_{name.lower()}.csv",
        f"{name.lower()}_data.csv",
        f"{folder.name.lower()}_data.csv",
        f"data_{folder.name.lower()}.csv",
    ]
    for file_name in candidates:
        if (folder / file_name).exists():
            return file_name

    csv_files = sorted(p.name for p in folder.iterdir() if p.suffix == ".csv" and p.name != "coordinates.csv")
    keyword_files = [f for f in csv_files if "final" in f or "data" in f]
    if keyword_files:
        return keyword_files[0]
    if csv_files:
        return csv_files[0]

    logger.warning('No CSV file found in %s, using default name "data.csv"', folder.name)
    return "data.csv"


def process_folder(folder: Path) -> LocationDescriptor:
    name, display_name = display_name_for(folder.name)
    latitude = longitude = None

    coordinates = folder / "coordinates.csv"
    if coordinates.exists():
        try:
            origin = ingest.parse_origin(ingest.read_local_text(coordinates), display_name)
            latitude, longitude = origin.location.lat, origin.location.lng
        except (FetchError, ParseError) as e:
            logger.warning("Ignoring %s: %s", coordinates, e)

    return LocationDescriptor(
        name=name,
        display_name=display_name,
        latitude=latitude,
        longitude=longitude,
        folder_path=folder.name,
        file=find_data_file(folder, name),
    )


def scan_data_dir(data_dir: Union[str, Path]) -> List[LocationDescriptor]:
    """Descriptors for every non-hidden sub-folder, sorted by folder name."""
    data_dir = Path(data_dir)
    folders = sorted(p for p in data_dir.iterdir() if p.is_dir() and not p.name.startswith("."))
    return [process_folder(folder) for folder in folders]


def write_locations_json(data_dir: Union[str, Path], output: Optional[Path] = None) -> List[LocationDescriptor]:
    data_dir = Path(data_dir)
    output = output or data_dir / LOCATIONS_FILE
    locations = scan_data_dir(data_dir)
    with open(output, "w", encoding="utf-8") as f:
        json.dump([loc.to_dict() for loc in locations], f, indent=2, ensure_ascii=False)
    logger.info("Generated %s with %d locations", output, len(locations))
    return locations


def load_locations(source: DataSource) -> List[LocationDescriptor]:
    """Locations from locations.json, or DEFAULT_LOCATIONS when unavailable."""
    try:
        raw = source.fetch_json(LOCATIONS_FILE)
    except FetchError:
        logger.info("Using default locations as %s was not found", LOCATIONS_FILE)
        return list(DEFAULT_LOCATIONS)
    except ParseError as e:
        logger.error("Error loading location folders: %s", e)
        return list(DEFAULT_LOCATIONS)

    if not isinstance(raw, list):
        logger.error("%s should hold a list of locations", LOCATIONS_FILE)
        return list(DEFAULT_LOCATIONS)

    locations = []
    for entry in raw:
        try:
            locations.append(LocationDescriptor.from_dict(entry))
        except (AttributeError, ValueError) as e:
            logger.warning("Skipping location entry %r: %s", entry, e)
    return locations or list(DEFAULT_LOCATIONS)


def find_location(locations: List[LocationDescriptor], name: str) -> Optional[LocationDescriptor]:
    for location in locations:
        if location.name.lower() == name.lower():
            return location
    return None
