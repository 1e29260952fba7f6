"""
Customer Flow Dashboard
Flask application serving the charts and the flow map for each location
"""
from flask import Flask, Response, abort, jsonify, render_template, request

from flowdash import config, ingest
from flowdash.data_processor import process_data
from flowdash.errors import FetchError, ParseError
from flowdash.figures import CHARTS, build_figure
from flowdash.geometry import build_arcs
from flowdash.ingest import DataSource
from flowdash.locations import find_location, load_locations
from flowdash.logging_config import setup_logging
from flowdash.models import MapConfig
from flowdash.selector import select
from flowdash.view import render_location_map

setup_logging(config.LOG_LEVEL)

app = Flask(__name__)

source = DataSource()

# Cached per data source; failures are not cached so Retry refetches
locations_cache = None
dashboard_cache = {}


def configure(data_source: DataSource):
    """Point the app at another data root and drop cached data."""
    global source, locations_cache
    source = data_source
    locations_cache = None
    dashboard_cache.clear()


def get_locations():
    global locations_cache
    if locations_cache is None:
        locations_cache = load_locations(source)
    return locations_cache


def get_location(name):
    location = find_location(get_locations(), name)
    if location is None:
        abort(404, description=f"Unknown location {name!r}")
    return location


def get_data(location):
    if location.name not in dashboard_cache:
        rows = ingest.load_rows(source, location)
        dashboard_cache[location.name] = process_data(rows)
    return dashboard_cache[location.name]


@app.errorhandler(FetchError)
def handle_fetch_error(error):
    app.logger.error("Error fetching data: %s", error)
    return jsonify(error=config.ERROR_MESSAGES["FETCH_FAILED"], retry=True), 502


@app.errorhandler(ParseError)
def handle_parse_error(error):
    app.logger.error("Error parsing data: %s", error)
    return jsonify(error=config.ERROR_MESSAGES["PARSE_FAILED"], retry=True), 422


@app.errorhandler(404)
def handle_not_found(error):
    return jsonify(error=error.description), 404


def map_config_from_request():
    """MapConfig from ?style=&max_arcs=&zoom=&destinations= query parameters."""
    try:
        return MapConfig(
            tile_style=request.args.get("style", config.DEFAULT_TILE_STYLE),
            max_arcs=request.args.get("max_arcs", config.DEFAULT_MAX_ARCS, type=int),
            zoom=request.args.get("zoom", config.DEFAULT_ZOOM, type=int),
            show_destinations=request.args.get("destinations", "1") not in ("0", "false", "no"),
        )
    except ValueError as e:
        abort(400, description=str(e))


@app.route('/')
def index():
    """Serve the dashboard page."""
    locations = get_locations()
    selected = locations[0]
    if request.args.get("location"):
        selected = get_location(request.args["location"])

    destinations = select(ingest.load_destinations(source, selected), config.DEFAULT_MAX_ARCS)

    # Load errors surface through the charts Retry banner
    try:
        data = get_data(selected)
    except (FetchError, ParseError) as e:
        app.logger.warning("No summary for %s: %s", selected.name, e)
        data = None

    return render_template(
        'index.html',
        locations=locations,
        selected=selected,
        destinations=destinations,
        charts=list(CHARTS),
        stats=data['stats'] if data else None,
        top_types=data['visitors_by_type'][:5] if data else [],
    )


@app.route('/api/locations')
def api_locations():
    """Return the location picker entries."""
    return jsonify([loc.to_dict() for loc in get_locations()])


@app.route('/api/<name>/summary')
def api_summary(name):
    """Return aggregate statistics for a location."""
    return jsonify(get_data(get_location(name))['stats'])


@app.route('/api/<name>/charts')
def api_charts(name):
    """Return every chart-ready table for a location."""
    return jsonify(get_data(get_location(name)))


@app.route('/api/<name>/charts/<chart>')
def api_chart_figure(name, chart):
    """Return one chart as Plotly figure JSON."""
    data = get_data(get_location(name))
    if chart not in CHARTS:
        abort(404, description=f"Unknown chart {chart!r}")
    return Response(build_figure(chart, data).to_json(), mimetype='application/json')


@app.route('/api/<name>/destinations')
def api_destinations(name):
    """Return the ranked destinations and their arcs."""
    location = get_location(name)
    map_config = map_config_from_request()
    destinations = select(ingest.load_destinations(source, location), map_config.max_arcs)
    origin = ingest.load_origin(source, location)

    arcs = build_arcs(origin.location, destinations) if origin else []
    return jsonify(
        location=location.to_dict(),
        origin=origin.location.as_list() if origin else None,
        destinations=[d.to_dict() for d in destinations],
        arcs=[a.to_dict() for a in arcs],
    )


@app.route('/map/<name>')
def location_map(name):
    """Serve the Leaflet flow map of a location."""
    location = get_location(name)
    html = render_location_map(source, location, map_config_from_request())
    if html is None:
        abort(404, description=f"No coordinates for {location.display_name}")
    return Response(html, mimetype='text/html')


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5001)
