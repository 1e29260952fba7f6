import pytest

from flowdash import ingest
from flowdash.data_processor import process_data, region_by_customer_type, to_frame
from flowdash.figures import CHARTS, build_figure

from conftest import MODA_CSV


@pytest.fixture
def data():
    return process_data(ingest.parse_csv(MODA_CSV))


def test_summary_stats(data):
    stats = data["stats"]
    assert stats["total_rows"] == 5
    assert stats["total_visitors"] == 538
    assert stats["avg_visitors"] == 107.6
    assert stats["region_share"] == [
        {"name": "Istanbul Anadolu", "percent": 80.0},
        {"name": "Istanbul Avrupa", "percent": 20.0},
    ]
    assert stats["top_type"] == {"name": "Cafe", "visitors": 259, "visitorPercent": 48.1}


def test_channel_distribution(data):
    assert data["channels"] == [
        {"name": "Horeca", "value": 3, "percent": 60.0},
        {"name": "Retail", "value": 2, "percent": 40.0},
    ]


def test_customer_types_largest_first(data):
    assert data["customer_types"][0] == {"name": "Cafe", "value": 3, "percent": 60.0}
    assert len(data["customer_types"]) == 3


def test_visitor_segments(data):
    segments = {s["name"]: s for s in data["visitor_segments"]}
    assert [s["name"] for s in data["visitor_segments"]] == ["Premium", "Standard"]
    assert segments["Premium"]["visitors"] == 309
    assert segments["Premium"]["visitorPercent"] == 57.4
    assert segments["Standard"]["avgVisitors"] == 76


def test_top_destinations_prefer_place_name(data):
    top = data["top_destinations"]
    assert [d["name"] for d in top] == ["Nero Moda", "Pub X", "Mall Y Place", "Bad Coordinates"]
    assert top[0]["type"] == "Cafe"
    assert top[0]["visitorPercent"] == 38.8


def test_visitors_by_region(data):
    assert [(r["name"], r["visitors"]) for r in data["visitors_by_region"]] == [
        ("Kadikoy", 438), ("Besiktas", 100), ("Moda", 0),
    ]


def test_region_by_customer_type_drops_sparse_types(data):
    assert data["region_customer_types"] == [
        {"name": "Cafe", "Istanbul Anadolu": 3, "Istanbul Avrupa": 0},
    ]


def test_scores_use_decimal_commas(data):
    first = data["scores"][0]
    assert first["id"] == 1
    assert first["name"] == "Cafe Nero"
    assert first["profileScore"] == 0.75
    assert first["populationScore"] == 0.6
    assert first["visitors"] == 209
    assert first["segment"] == "Premium"


def test_missing_columns_and_empty_input():
    empty = process_data([])
    assert empty["stats"]["total_rows"] == 0
    assert empty["stats"]["top_type"] is None
    assert empty["channels"] == []
    assert empty["scores"] == []

    bare = to_frame([{"place_name": "A"}])
    assert bare["visitor_count"].tolist() == [0]
    assert region_by_customer_type(bare) == []


@pytest.mark.parametrize("chart", sorted(CHARTS))
def test_every_chart_builds(data, chart):
    fig = build_figure(chart, data)
    assert len(fig.data) >= 1
    assert fig.layout.title.text


def test_empty_chart_shows_placeholder():
    fig = build_figure("channels", process_data([]))
    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No data"


def test_unknown_chart():
    with pytest.raises(KeyError):
        build_figure("nope", {})
