from typing import Optional, List
from sqlmodel import SQLModel, Field


class ParkMetadata(SQLModel):
    """One tourism-relevant protected area, built from a WDPA CSV row."""

    id: str
    name: str
    localName: str = ""
    country: str = "Unknown"
    countryISO3: str = ""
    desigEng: str = ""
    iucnCat: str = ""
    area_km2: Optional[float] = None
    statusYear: Optional[float] = None
    govType: str = "Unknown"

    # Enrichment fields; only the featured parks carry real values
    visitors_2024: float = 0
    predator_index: float = 0
    has_big_five: bool = False
    in_migration_route: bool = False
    main_species: List[str] = Field(default_factory=list)
    storymap_url: str = ""


class ParkCard(SQLModel):
    id: str
    name: str
    subtitle: str
    tags: List[str] = Field(default_factory=list)
    active: bool = False


class ParkDetail(SQLModel):
    """Everything the detail panel shows for the selected park."""
    id: str
    name: str
    country: str
    tags: List[str] = Field(default_factory=list)
    type_label: str
    area_label: str
    year_label: str
    manager: str
    key_species: Optional[str] = None
    storymap_url: str = ""
    storymap_hint: str
    storymap_button_label: str
    storymap_enabled: bool = False
    fill_color: str


class MapInfo(SQLModel):
    id: str
    title: str
    subtitle: str


class StatusYearRange(SQLModel):
    min_year: Optional[float] = None
    max_year: Optional[float] = None


class CountrySummaryOut(SQLModel):
    country: str
    parks: int
    total_area_km2: float
    earliest_year: Optional[int] = None
