"""
The park catalog served to the dashboard.

Joins the GeoJSON polygon layer to the CSV metadata by SITE_ID and shapes the
plain view-models the frontend renders (list cards, detail panel, inline map
popup). The catalog is built once at startup and never changes afterwards;
selection and filter state belong to the caller.
"""

import logging
import math
from typing import Dict, List, Optional

from colors import color_by_status_year, status_year_range
from models import MapInfo, ParkCard, ParkDetail, ParkMetadata, StatusYearRange
from wdpa_meta import site_id_key

logger = logging.getLogger(__name__)

# Filter mode -> label shown next to the search box
FILTER_MODES = {
    "park": "Park / country",
    "country": "Country",
    "iucn": "IUCN category",
}
DEFAULT_FILTER_MODE = "country"


def _number_or_none(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return value


def resolve_status_year(meta: Optional[ParkMetadata], feature: Optional[dict]) -> Optional[float]:
    """Establishment year from the metadata, falling back to the feature's STATUS_YR."""
    if meta is not None:
        from_meta = _number_or_none(meta.statusYear)
        if from_meta is not None:
            return from_meta
    if feature is not None:
        props = feature.get("properties") or {}
        from_feature = _number_or_none(props.get("STATUS_YR"))
        if from_feature is not None:
            return from_feature
    return None


def feature_park_id(feature: dict) -> Optional[str]:
    site_id = (feature.get("properties") or {}).get("SITE_ID")
    if not site_id:
        return None
    return site_id_key(site_id)


def join_features(geojson: dict, meta_by_id: Dict[str, ParkMetadata]):
    """
    Split the layer into features that have metadata and features that don't.

    A multi-parcel site is several features sharing one SITE_ID, so joined
    features are grouped per park id in layer order.

    Joined features are copied with an `id` property stamped on them; the input
    collection is left untouched.
    """
    joined: Dict[str, List[dict]] = {}
    unmatched: List[dict] = []
    for feature in (geojson or {}).get("features") or []:
        if not isinstance(feature, dict):
            continue
        park_id = feature_park_id(feature)
        if park_id is None or park_id not in meta_by_id:
            unmatched.append(feature)
            continue
        properties = dict(feature.get("properties") or {})
        properties["id"] = park_id
        joined.setdefault(park_id, []).append({**feature, "properties": properties})

    if unmatched:
        logger.debug("%d features have no park metadata and stay non-interactive", len(unmatched))
    return joined, unmatched


def matches_filter(meta: ParkMetadata, mode: str, keyword: Optional[str]) -> bool:
    keyword = (keyword or "").strip().lower()
    if not keyword:
        return True
    name = (meta.name or "").lower()
    country = (meta.country or "").lower()

    if mode == "park":
        return keyword in name or keyword in country
    if mode == "country":
        return keyword in country
    if mode == "iucn":
        return keyword in (meta.iucnCat or "").lower()
    return True


def _format_number(value: float, max_decimals: int = 3) -> str:
    text = f"{value:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _format_year(year: Optional[float]) -> str:
    if not year:
        return "N/A"
    if float(year).is_integer():
        return str(int(year))
    return str(year)


def park_card(meta: ParkMetadata, active: bool = False) -> ParkCard:
    return ParkCard(
        id=meta.id,
        name=meta.name,
        subtitle=f"{meta.country} · {meta.desigEng or ''}",
        tags=list(meta.main_species),
        active=active,
    )


class ParkCatalog:
    def __init__(self, parks_meta: List[ParkMetadata], geojson: Optional[dict] = None):
        self.parks: List[ParkMetadata] = list(parks_meta)
        self.meta_by_id: Dict[str, ParkMetadata] = {m.id: m for m in self.parks}
        self.features_by_id, self.unmatched_features = join_features(geojson or {}, self.meta_by_id)

        all_features = [f for parcels in self.features_by_id.values() for f in parcels]
        all_features += self.unmatched_features
        years = [m.statusYear for m in self.parks] + [
            (f.get("properties") or {}).get("STATUS_YR") for f in all_features
        ]
        self.year_range: StatusYearRange = status_year_range(years)

    def __len__(self):
        return len(self.parks)

    def get(self, park_id: str) -> Optional[ParkMetadata]:
        return self.meta_by_id.get(park_id)

    def first_feature(self, park_id: str) -> Optional[dict]:
        parcels = self.features_by_id.get(park_id)
        return parcels[0] if parcels else None

    def fill_color(self, meta: Optional[ParkMetadata], feature: Optional[dict] = None) -> str:
        year = resolve_status_year(meta, feature)
        return color_by_status_year(year, self.year_range.min_year, self.year_range.max_year)

    def filtered(self, mode: str = DEFAULT_FILTER_MODE, keyword: Optional[str] = None) -> List[ParkMetadata]:
        if mode not in FILTER_MODES:
            raise ValueError(f"Unsupported filter mode: {mode}")
        return [m for m in self.parks if matches_filter(m, mode, keyword)]

    def cards(
        self,
        mode: str = DEFAULT_FILTER_MODE,
        keyword: Optional[str] = None,
        active_id: Optional[str] = None,
    ) -> List[ParkCard]:
        return [park_card(m, active=m.id == active_id) for m in self.filtered(mode, keyword)]

    def detail(self, park_id: str) -> Optional[ParkDetail]:
        meta = self.get(park_id)
        if meta is None:
            return None

        tags = []
        if meta.in_migration_route:
            tags.append("On Migration Route")
        if meta.has_big_five:
            tags.append("Big Five Area")

        has_storymap = bool(meta.storymap_url)
        return ParkDetail(
            id=meta.id,
            name=meta.name,
            country=meta.country,
            tags=tags,
            type_label=f"{meta.desigEng or 'N/A'} (IUCN {meta.iucnCat or 'N/A'})",
            area_label=f"{_format_number(meta.area_km2)} km²" if meta.area_km2 else "N/A",
            year_label=_format_year(meta.statusYear),
            manager=meta.govType or "N/A",
            key_species=", ".join(meta.main_species) or None,
            storymap_url=meta.storymap_url,
            storymap_hint=(
                "Check out the interactive story map:"
                if has_storymap
                else "No dedicated story map available."
            ),
            storymap_button_label="Open Story Map" if has_storymap else "Story Map Unavailable",
            storymap_enabled=has_storymap,
            fill_color=self.fill_color(meta, self.first_feature(meta.id)),
        )

    def map_info(self, park_id: str) -> Optional[MapInfo]:
        """Inline popup content; only parks drawn on the map have one."""
        meta = self.get(park_id)
        if meta is None or park_id not in self.features_by_id:
            return None
        return MapInfo(id=meta.id, title=meta.name, subtitle=meta.country)

    def feature_collection(self, include_unmatched: bool = False) -> dict:
        features = []
        for park_id, parcels in self.features_by_id.items():
            meta = self.meta_by_id[park_id]
            for feature in parcels:
                properties = {
                    **feature["properties"],
                    "name": meta.name,
                    "country": meta.country,
                    "fill_color": self.fill_color(meta, feature),
                    "interactive": True,
                }
                features.append({**feature, "properties": properties})

        if include_unmatched:
            for feature in self.unmatched_features:
                properties = {
                    **(feature.get("properties") or {}),
                    "fill_color": self.fill_color(None, feature),
                    "interactive": False,
                }
                features.append({**feature, "properties": properties})

        return {"type": "FeatureCollection", "features": features}
