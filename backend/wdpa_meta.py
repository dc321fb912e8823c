"""
Build the park metadata list from the WDPA protected-areas CSV.

The CSV is the public World Database on Protected Areas export for Africa. Only
parks a visitor could actually go to are kept: the designation has to look like
a park/reserve/conservancy and strict nature reserves (IUCN Ia/Ib) are dropped.
A small optional enrichment list adds visitor numbers, species and story map
links for the featured parks.
"""

import logging
import math
import re
import unicodedata
from typing import Dict, Iterable, List, Optional

import pandas as pd

from models import ParkMetadata

logger = logging.getLogger(__name__)


ISO3_COUNTRY_NAMES = {
    "TZA": "Tanzania",
    "KEN": "Kenya",
    "UGA": "Uganda",
    "RWA": "Rwanda",
    "BDI": "Burundi",
    "ETH": "Ethiopia",
    "ZAF": "South Africa",
    "NAM": "Namibia",
    "BWA": "Botswana",
    "ZMB": "Zambia",
    "ZWE": "Zimbabwe",
    "MOZ": "Mozambique",
    "AGO": "Angola",
}

# Same "visitable park" rule used when the GeoJSON layer was cut
TOURISM_PATTERN = re.compile(
    r"National Park|National Reserve|Nature Reserve|Wildlife Reserve"
    r"|Game Reserve|Conservation Area|Conservancy",
    re.IGNORECASE,
)
EXCLUDED_IUCN_CATEGORIES = {"Ia", "Ib"}

# A comma only splits when an even number of quotes follows it on the line
_SPLIT_RE = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')
_LINE_RE = re.compile(r"\r?\n")

FRAME_COLUMNS = list(ParkMetadata.model_fields.keys())


def iso3_to_country_name(iso3: Optional[str]) -> str:
    if not iso3:
        return "Unknown"
    return ISO3_COUNTRY_NAMES.get(iso3, iso3)


def to_number(value) -> Optional[float]:
    """Parse a numeric cell. Empty, invalid, NaN and infinite values give None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        # float() also takes "1_951" digit grouping, which is not a CSV number
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def collation_key(text: str):
    """
    Sort key that orders names the way a reader expects: accents and case only
    break ties, so "Étosha" sits with the E names and "iSimangaliso" with the I names.
    """
    decomposed = unicodedata.normalize("NFKD", text or "")
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), decomposed.casefold(), text or "")


def split_csv_line(line: str) -> List[str]:
    return _SPLIT_RE.split(line)


def strip_quotes(cell: str) -> str:
    """Remove one layer of surrounding double quotes. Doubled inner quotes are left alone."""
    if cell.startswith('"'):
        cell = cell[1:]
    if cell.endswith('"'):
        cell = cell[:-1]
    return cell


def parse_header(line: str) -> Dict[str, int]:
    header_index: Dict[str, int] = {}
    for i, name in enumerate(line.split(",")):
        header_index[name.lstrip("\ufeff").strip()] = i
    return header_index


def parse_csv(csv_text: str) -> List[Dict[str, str]]:
    """Split the CSV text into one dict per data row, keyed by header name."""
    if not csv_text:
        return []
    lines = _LINE_RE.split(csv_text.strip())
    if len(lines) < 2:
        return []

    header_index = parse_header(lines[0])
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        cells = split_csv_line(line)
        row = {}
        for key, idx in header_index.items():
            raw = cells[idx] if idx < len(cells) else ""
            row[key] = strip_quotes(raw)
        rows.append(row)
    return rows


def site_id_key(value) -> str:
    # 916.0 and 916 must hit the same park
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def index_enrichment(records: Optional[Iterable[dict]]) -> Dict[str, dict]:
    """Key enrichment records by WDPA site id. Later duplicates win."""
    by_site_id: Dict[str, dict] = {}
    if not records:
        return by_site_id
    for record in records:
        if not isinstance(record, dict):
            logger.debug("Skipping non-object enrichment entry: %r", record)
            continue
        site_id = record.get("wdpa_site_id")
        if site_id is None:
            continue
        by_site_id[site_id_key(site_id)] = record
    return by_site_id


def is_tourism_park(desig: str, iucn_cat: str) -> bool:
    if not TOURISM_PATTERN.search(desig or ""):
        return False
    return (iucn_cat or "") not in EXCLUDED_IUCN_CATEGORIES


def build_park_meta(row: Dict[str, str]) -> ParkMetadata:
    iso3 = row.get("ISO3", "")
    return ParkMetadata(
        id=str(row.get("SITE_ID", "")),
        name=row.get("NAME_ENG") or row.get("NAME") or "(Unnamed)",
        localName=row.get("NAME") or "",
        country=iso3_to_country_name(iso3),
        countryISO3=iso3,
        desigEng=row.get("DESIG_ENG", ""),
        iucnCat=row.get("IUCN_CAT", ""),
        area_km2=to_number(row.get("REP_AREA")),
        statusYear=to_number(row.get("STATUS_YR")),
        govType=row.get("GOV_TYPE") or row.get("MANG_AUTH") or "Unknown",
    )


def _species_list(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    try:
        return [str(s) for s in value]
    except TypeError:
        return []


def apply_enrichment(meta: ParkMetadata, record: dict) -> ParkMetadata:
    """Return a copy of `meta` with the six enrichment fields taken from `record`."""
    return meta.model_copy(
        update={
            "visitors_2024": to_number(record.get("visitors_2024")) or 0,
            "predator_index": to_number(record.get("predator_index")) or 0,
            "has_big_five": bool(record.get("has_big_five")),
            "in_migration_route": bool(record.get("in_migration_route")),
            "main_species": _species_list(record.get("main_species")),
            "storymap_url": str(record.get("storymap_url") or ""),
        }
    )


def build_parks_meta(
    csv_text: str,
    enrichment: Optional[Iterable[dict]] = None,
) -> List[ParkMetadata]:
    """
    Turn raw WDPA CSV text into the sorted list of tourism parks.

    Rows are filtered by designation and IUCN category, enriched from
    `enrichment` when a record shares the site id, and sorted by
    (country, name). Header-only or empty input gives an empty list.
    """
    rows = parse_csv(csv_text)
    if not rows:
        return []

    enrichment_by_id = index_enrichment(enrichment)
    parks_by_id: Dict[str, ParkMetadata] = {}
    skipped = 0

    for row in rows:
        if not is_tourism_park(row.get("DESIG_ENG", ""), row.get("IUCN_CAT", "")):
            skipped += 1
            continue

        meta = build_park_meta(row)
        if not meta.id:
            logger.debug("Skipping row without SITE_ID: %s", meta.name)
            skipped += 1
            continue

        custom = enrichment_by_id.get(meta.id)
        if custom is not None:
            meta = apply_enrichment(meta, custom)

        if meta.id in parks_by_id:
            logger.debug("Duplicate SITE_ID %s, keeping the later row", meta.id)
        parks_by_id[meta.id] = meta

    parks = sorted(
        parks_by_id.values(),
        key=lambda m: (collation_key(m.country), collation_key(m.name)),
    )
    logger.info(
        "Built metadata for %d parks (%d rows skipped, %d enriched)",
        len(parks),
        skipped,
        sum(1 for m in parks if m.id in enrichment_by_id),
    )
    return parks


def parks_meta_frame(parks: Iterable[ParkMetadata]) -> pd.DataFrame:
    """Tabular view of the metadata list (one row per park, metadata field names as columns)."""
    return pd.DataFrame([p.model_dump() for p in parks], columns=FRAME_COLUMNS)
