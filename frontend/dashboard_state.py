"""Selection and filter state for one dashboard session, plus polygon styling and bounds helpers."""

from dataclasses import dataclass
from typing import Iterable, Optional

BASE_STYLE = {"color": "#F47D85", "weight": 1, "opacity": 0.8, "fillOpacity": 0.55}
ACTIVE_STYLE = {"color": "#F4A261", "weight": 3, "opacity": 1, "fillOpacity": 0.65}
FALLBACK_FILL = "#d6c5a5"


def park_style(fill_color: Optional[str], active: bool = False) -> dict:
    style = dict(ACTIVE_STYLE if active else BASE_STYLE)
    style["fillColor"] = fill_color or FALLBACK_FILL
    return style


def _iter_positions(coords):
    if not coords:
        return
    if isinstance(coords[0], (int, float)):
        yield coords
        return
    for part in coords:
        yield from _iter_positions(part)


def feature_bounds(features):
    """
    [[south, west], [north, east]] around one GeoJSON feature or a list of them
    (every parcel of a multi-parcel park), or None without coordinates.
    """
    if isinstance(features, dict):
        features = [features]

    geometries = []
    for feature in features:
        geometry = feature.get("geometry") or {}
        geometries.extend(geometry.get("geometries") or [geometry])

    lngs, lats = [], []
    for geom in geometries:
        for position in _iter_positions(geom.get("coordinates") or []):
            if len(position) >= 2:
                lngs.append(position[0])
                lats.append(position[1])
    if not lngs:
        return None
    return [[min(lats), min(lngs)], [max(lats), max(lngs)]]


@dataclass
class DashboardSession:
    """
    Owns what the user has selected. The update methods are the only mutators.
    Selection changes return True so the page knows to rerun and re-center the
    map. Filter modes are validated by the API, which owns the list.
    """

    active_park_id: Optional[str] = None
    filter_mode: str = "country"
    keyword: str = ""

    def select_park(self, park_id: Optional[str], known_ids: Optional[Iterable[str]] = None) -> bool:
        if park_id is not None and known_ids is not None and park_id not in set(known_ids):
            park_id = None
        if park_id == self.active_park_id:
            return False
        self.active_park_id = park_id
        return True

    def clear_selection(self) -> bool:
        return self.select_park(None)

    def set_filter(self, mode: Optional[str] = None, keyword: Optional[str] = None):
        if mode is not None:
            self.filter_mode = mode
        if keyword is not None:
            self.keyword = keyword.strip()

    def is_active(self, park_id: str) -> bool:
        return park_id == self.active_park_id
