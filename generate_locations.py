"""
Generate locations.json

Scans the data directory (one sub-folder per restaurant location) and writes
the location list the dashboard loads at startup.

Usage: python generate_locations.py [data_dir]
"""
import sys
from pathlib import Path

from flowdash import config
from flowdash.locations import LOCATIONS_FILE, write_locations_json


def main():
    data_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else config.DATA_DIR
    if not data_dir.is_dir():
        print(f"ERROR: data directory {data_dir} not found")
        sys.exit(1)

    locations = write_locations_json(data_dir)

    print(f"Successfully generated {LOCATIONS_FILE} with {len(locations)} locations")
    for loc in locations:
        coords = f"({loc.latitude}, {loc.longitude})" if loc.has_coordinates else "(no coordinates)"
        print(f"  - {loc.display_name}: {loc.folder_path}/{loc.file} {coords}")


if __name__ == "__main__":
    main()
