"""
Popup fragments for the map, rendered from Jinja templates.
"""
from jinja2 import Environment, PackageLoader, select_autoescape

from flowdash import config
from flowdash.models import DestinationPoint, OriginPoint

_env = Environment(
    loader=PackageLoader("flowdash", "templates"),
    autoescape=select_autoescape(["html"]),
)


def origin_icon_html(color: str = config.ORIGIN_COLOR) -> str:
    return _env.get_template("popups/origin_icon.html").render(color=color)


def origin_popup_html(origin: OriginPoint) -> str:
    return _env.get_template("popups/origin.html").render(origin=origin)


def destination_popup_html(destination: DestinationPoint, color: str) -> str:
    return _env.get_template("popups/destination.html").render(destination=destination, color=color)
