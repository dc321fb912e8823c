import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load data locations and API settings from .env at project root
load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class Settings:
    parks_geojson: str
    parks_csv: str
    parks_enrichment: Optional[str]
    fetch_timeout: float
    log_level: str


def resolve_location(value: str) -> str:
    """Return URLs untouched and make relative file paths absolute from the project root."""
    if value.startswith(("http://", "https://")):
        return value
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return str(path)


def get_settings() -> Settings:
    enrichment = os.getenv("PARKS_ENRICHMENT", "data/parks_enrichment.json").strip()
    try:
        timeout = float(os.getenv("FETCH_TIMEOUT", "10"))
    except ValueError:
        timeout = 10.0

    return Settings(
        parks_geojson=resolve_location(os.getenv("PARKS_GEOJSON", "data/parks.json")),
        parks_csv=resolve_location(
            os.getenv("PARKS_CSV", "data/WDPA_Dec2025_Public_AF_csv.csv")
        ),
        parks_enrichment=resolve_location(enrichment) if enrichment else None,
        fetch_timeout=timeout,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
