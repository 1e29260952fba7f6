import pytest

from flowdash.animation import TimerHandle
from flowdash.models import DestinationPoint, GeoPoint, OriginPoint
from flowdash.surface import FoliumSurface

MODA_CSV = """MusteriKodu,MusteriBolge3,MusteriBolge4,SatisKanali,MusteriTabelaAdi,MusteriCesidi,KoordinatX,KoordinatY,MapProfileScore,MapPopulationScore,Mapin Segment,place_name,visitor_count
1,Istanbul Anadolu,Kadikoy,Horeca,Cafe Nero,Cafe,"40,98","29,02","0,75","0,60",Premium,Nero Moda,209
2,Istanbul Anadolu,Kadikoy,Horeca,Pub X,Modern Pub & Bistro,"40,99","29,03","0,55","0,40",Standard,,179

3,Istanbul Avrupa,Besiktas,Retail,Mall Y,Shopping Mall,"41,04","29,01","0,35","0,80",Premium,Mall Y Place,100
4,Istanbul Anadolu,Kadikoy,Horeca,Bad Coordinates,Cafe,abc,"29,02","0,10","0,10",Standard,,50
5,Istanbul Anadolu,Moda,Retail,No Visitors,Cafe,"40,97","29,04","0,20","0,30",Standard,,0
"""

TARABYA_CSV = """place_name,latitude,longitude,visitor_count
Marina,41.14,29.06,40
Sahil,41.15,29.05,75
Broken,95.0,29.05,10
"""

ORIGIN_CSV = "lat,lng\n40.9830,29.0262\n"


class ManualScheduler:
    """Scheduler driven by advance(ms) instead of a real clock."""

    def __init__(self):
        self.now = 0
        self.timers = []  # [due, interval or None, handle, callback]

    def call_later(self, delay_ms, callback):
        handle = TimerHandle()
        self.timers.append([self.now + delay_ms, None, handle, callback])
        return handle

    def call_every(self, interval_ms, callback):
        handle = TimerHandle()
        self.timers.append([self.now + interval_ms, interval_ms, handle, callback])
        return handle

    def advance(self, ms):
        end = self.now + ms
        while True:
            due = [t for t in self.timers if not t[2].cancelled and t[0] <= end]
            if not due:
                break
            timer = min(due, key=lambda t: t[0])
            self.now = timer[0]
            if timer[1] is None:
                timer[2].cancelled = True
            else:
                timer[0] += timer[1]
            timer[3]()
        self.timers = [t for t in self.timers if not t[2].cancelled]
        self.now = end

    @property
    def active(self):
        return [t for t in self.timers if not t[2].cancelled]


class SpySurface(FoliumSurface):
    """FoliumSurface that records every call made to it."""

    instances = []

    def __init__(self, center, zoom=15, flow_period_ms=100):
        super().__init__(center, zoom=zoom, flow_period_ms=flow_period_ms)
        self.calls = []
        SpySurface.instances.append(self)

    def _record(self, name):
        self.calls.append((name, self.released))

    def set_path_dash(self, layer, pattern, offset):
        self._record("set_path_dash")
        super().set_path_dash(layer, pattern, offset)

    def set_circle_style(self, layer, **style):
        self._record("set_circle_style")
        super().set_circle_style(layer, **style)

    def remove_layer(self, layer):
        self._record("remove_layer")
        super().remove_layer(layer)

    def invalidate_size(self):
        self._record("invalidate_size")
        super().invalidate_size()

    def fit_bounds(self, bounds, padding):
        self._record("fit_bounds")
        super().fit_bounds(bounds, padding)

    @property
    def mutations_after_release(self):
        return [name for name, released in self.calls if released]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def spy_surfaces():
    SpySurface.instances = []
    yield SpySurface.instances
    SpySurface.instances = []


@pytest.fixture
def origin():
    return OriginPoint(GeoPoint(40.9830, 29.0262), "Big Chefs Moda")


@pytest.fixture
def destinations():
    return [
        DestinationPoint("Nero Moda", GeoPoint(40.98, 29.02), 209, "Cafe"),
        DestinationPoint("Pub X", GeoPoint(40.99, 29.03), 179, "Modern Pub & Bistro"),
        DestinationPoint("Mall Y Place", GeoPoint(41.04, 29.01), 100, "Shopping Mall"),
    ]


@pytest.fixture
def data_dir(tmp_path):
    moda = tmp_path / "BigChefsModa"
    moda.mkdir()
    (moda / "amir_final_moda.csv").write_text(MODA_CSV, encoding="utf-8")
    (moda / "coordinates.csv").write_text(ORIGIN_CSV, encoding="utf-8")

    tarabya = tmp_path / "BigChefsTarabya"
    tarabya.mkdir()
    (tarabya / "tarabya_data.csv").write_text(TARABYA_CSV, encoding="utf-8")

    (tmp_path / ".cache").mkdir()
    return tmp_path
