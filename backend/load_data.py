import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pandas as pd
import requests

from models import ParkMetadata
from settings import Settings, configure_logging, get_settings
from wdpa_meta import build_parks_meta, parks_meta_frame

logger = logging.getLogger(__name__)


class DataLoadError(RuntimeError):
    """Raised when one of the dashboard data sources cannot be retrieved or parsed."""


@dataclass
class DashboardSources:
    geojson: dict
    csv_text: str
    enrichment: Optional[list]
    parks_meta: List[ParkMetadata]


def fetch_text(location: str, timeout: float = 10) -> str:
    """Read a data file from disk, or over HTTP when `location` is a URL."""
    try:
        if location.startswith(("http://", "https://")):
            resp = requests.get(location, timeout=timeout)
            resp.raise_for_status()
            return resp.content.decode("utf-8")
        return Path(location).read_text(encoding="utf-8")
    except (requests.RequestException, OSError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Failed to read {location}: {e}") from e


def fetch_json(location: str, timeout: float = 10):
    text = fetch_text(location, timeout=timeout)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DataLoadError(f"{location} is not valid JSON: {e}") from e


def load_enrichment(location: Optional[str], timeout: float = 10) -> Optional[list]:
    """Load the featured-park enrichment array. A missing setting means no enrichment."""
    if not location:
        return None
    if not location.startswith(("http://", "https://")) and not Path(location).exists():
        logger.info("No enrichment file at %s, featured park fields stay at defaults", location)
        return None
    data = fetch_json(location, timeout=timeout)
    if not isinstance(data, list):
        raise DataLoadError(f"{location} must contain a JSON array of park records")
    return data


def load_sources(settings: Optional[Settings] = None) -> DashboardSources:
    """
    Retrieve the GeoJSON layer and the WDPA CSV together and build the park metadata.

    Both retrievals run at the same time and the call returns once both are
    done. Any failure raises DataLoadError; there is no retry.
    """
    settings = settings or get_settings()
    timeout = settings.fetch_timeout

    with ThreadPoolExecutor(max_workers=2) as pool:
        geojson_future = pool.submit(fetch_json, settings.parks_geojson, timeout)
        csv_future = pool.submit(fetch_text, settings.parks_csv, timeout)
        geojson = geojson_future.result()
        csv_text = csv_future.result()

    if not isinstance(geojson, dict):
        raise DataLoadError(f"{settings.parks_geojson} is not a GeoJSON object")

    enrichment = load_enrichment(settings.parks_enrichment, timeout=timeout)
    parks_meta = build_parks_meta(csv_text, enrichment)

    logger.info(
        "Loaded %d features and %d parks",
        len(geojson.get("features") or []),
        len(parks_meta),
    )
    return DashboardSources(
        geojson=geojson,
        csv_text=csv_text,
        enrichment=enrichment,
        parks_meta=parks_meta,
    )


def summarize(parks: List[ParkMetadata]) -> pd.DataFrame:
    """Per-country park count, total reported area and earliest establishment year."""
    df = parks_meta_frame(parks)
    columns = ["country", "parks", "total_area_km2", "earliest_year"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    df["area_km2"] = pd.to_numeric(df["area_km2"], errors="coerce").fillna(0.0)
    # 0 means "not reported" in WDPA
    df["statusYear"] = pd.to_numeric(df["statusYear"], errors="coerce")
    df.loc[df["statusYear"] <= 0, "statusYear"] = None

    summary = (
        df.groupby("country", sort=True)
        .agg(
            parks=("id", "count"),
            total_area_km2=("area_km2", "sum"),
            earliest_year=("statusYear", "min"),
        )
        .reset_index()
    )
    summary["total_area_km2"] = summary["total_area_km2"].round(2)
    return summary[columns]


def main():
    settings = get_settings()
    configure_logging(settings.log_level)

    print(f"GeoJSON: {settings.parks_geojson}")
    print(f"CSV:     {settings.parks_csv}")
    print(f"Extras:  {settings.parks_enrichment or '(none)'}")

    sources = load_sources(settings)
    summary = summarize(sources.parks_meta)

    print(f"\n{len(sources.parks_meta)} tourism parks across {len(summary)} countries\n")
    print(summary.to_string(index=False))

    featured = [p for p in sources.parks_meta if p.storymap_url or p.main_species]
    if featured:
        print(f"\nFeatured parks ({len(featured)}):")
        for p in featured:
            print(f" - {p.name} ({p.country}) -> {p.storymap_url or 'no story map'}")


if __name__ == "__main__":
    main()
