import logging
import math
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from dashboard import DEFAULT_FILTER_MODE, FILTER_MODES, ParkCatalog
from load_data import DataLoadError, load_sources, summarize
from models import (
    CountrySummaryOut,
    MapInfo,
    ParkCard,
    ParkDetail,
    ParkMetadata,
    StatusYearRange,
)
from settings import Settings, configure_logging, get_settings

logger = logging.getLogger(__name__)


# -----------------------
# Response models
# -----------------------

class HealthOut(SQLModel):
    status: str
    parks: int


class FilterModeOut(SQLModel):
    mode: str
    label: str
    default: bool = False


# -----------------------
# App setup
# -----------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. Park data is loaded once when the app starts."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        try:
            sources = load_sources(settings)
            app.state.catalog = ParkCatalog(sources.parks_meta, sources.geojson)
        except DataLoadError as e:
            # No retry: the dashboard stays empty until the next restart
            logger.error("Failed to load data: %s", e)
            app.state.catalog = None
        yield

    app = FastAPI(title="Africa Parks Dashboard API", lifespan=lifespan)
    app.state.catalog = None

    # Allow the Streamlit frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


def get_catalog(request: Request) -> ParkCatalog:
    """Provide the loaded park catalog for dependency injection."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(status_code=503, detail="Park data is not loaded")
    return catalog


# -----------------------
# Routes
# -----------------------

def register_routes(app: FastAPI) -> None:

    @app.get("/health", response_model=HealthOut, summary="Report whether park data is loaded")
    def health(request: Request):
        catalog = getattr(request.app.state, "catalog", None)
        if catalog is None:
            return HealthOut(status="unavailable", parks=0)
        return HealthOut(status="ok", parks=len(catalog))

    @app.get("/parks", response_model=List[ParkCard], summary="List parks for the sidebar")
    def list_parks(
        mode: str = DEFAULT_FILTER_MODE,
        q: Optional[str] = None,
        active: Optional[str] = None,
        catalog: ParkCatalog = Depends(get_catalog),
    ):
        """
        Park cards sorted by country then name.

        Filters:
          - mode: what `q` is matched against (park, country or iucn)
          - q: case-insensitive keyword; empty lists every park
          - active: id of the selected park, flagged on its card
        """
        if mode not in FILTER_MODES:
            raise HTTPException(status_code=400, detail=f"Unsupported filter mode: {mode}")
        return catalog.cards(mode, q, active_id=active)

    @app.get("/parks/{park_id}", response_model=ParkMetadata, summary="Raw metadata for one park")
    def get_park(park_id: str, catalog: ParkCatalog = Depends(get_catalog)):
        meta = catalog.get(park_id)
        if meta is None:
            raise HTTPException(status_code=404, detail=f"Park {park_id} not found")
        return meta

    @app.get("/parks/{park_id}/details", response_model=ParkDetail, summary="Detail panel for one park")
    def get_park_details(park_id: str, catalog: ParkCatalog = Depends(get_catalog)):
        detail = catalog.detail(park_id)
        if detail is None:
            raise HTTPException(status_code=404, detail=f"Park {park_id} not found")
        return detail

    @app.get("/parks/{park_id}/map-info", response_model=MapInfo, summary="Inline map popup for one park")
    def get_park_map_info(park_id: str, catalog: ParkCatalog = Depends(get_catalog)):
        info = catalog.map_info(park_id)
        if info is None:
            raise HTTPException(status_code=404, detail=f"Park {park_id} is not on the map")
        return info

    @app.get("/geojson", summary="Park polygons joined to their metadata")
    def get_geojson(include_unmatched: bool = False, catalog: ParkCatalog = Depends(get_catalog)):
        """
        Feature collection for the map. Every feature carries `fill_color`
        and `interactive`; joined features also carry `id`, `name` and `country`.
        """
        return catalog.feature_collection(include_unmatched=include_unmatched)

    @app.get("/metadata/filter-modes", response_model=List[FilterModeOut], summary="Park list filter modes")
    def get_filter_modes():
        """The modes `/parks` accepts, in display order, with their labels."""
        return [
            FilterModeOut(mode=mode, label=label, default=mode == DEFAULT_FILTER_MODE)
            for mode, label in FILTER_MODES.items()
        ]

    @app.get("/metadata/years", response_model=StatusYearRange, summary="Earliest and latest establishment year")
    def get_year_range(catalog: ParkCatalog = Depends(get_catalog)):
        return catalog.year_range

    @app.get("/metadata/countries", response_model=List[CountrySummaryOut], summary="Parks per country")
    def get_country_summary(catalog: ParkCatalog = Depends(get_catalog)):
        summary = summarize(catalog.parks)
        out: List[CountrySummaryOut] = []
        for country, parks, total_area, earliest in summary.itertuples(index=False):
            out.append(
                CountrySummaryOut(
                    country=country,
                    parks=int(parks),
                    total_area_km2=float(total_area),
                    earliest_year=None if math.isnan(earliest) else int(earliest),
                )
            )
        return out


app = create_app()
