"""Shared fixtures: a tiny WDPA extract, its polygon layer and featured-park extras."""

import json

import pytest

from settings import Settings

HEADER = "SITE_ID,NAME_ENG,NAME,ISO3,DESIG_ENG,IUCN_CAT,REP_AREA,STATUS_YR,GOV_TYPE,MANG_AUTH"

ROWS = [
    "101,Serengeti National Park,Serengeti,TZA,National Park,II,14763,1951,Federal agency,TANAPA",
    "102,Masai Mara National Reserve,Masai Mara,KEN,National Reserve,II,1510,1961,,Narok County",
    "103,Strict Reserve,,KEN,Nature Reserve,Ia,50,2000,,",
    "104,Kakamega Forest Reserve,Kakamega,KEN,Forest Reserve,VI,240,1933,,",
    '105,"Tarangire National Park, Manyara",Tarangire,TZA,National Park,II,abc,,,',
    "106,,Parc National,XYZ,national park,,,,,",
    "107,Ib Park,,UGA,National Park,Ib,1,1990,,",
]


def _square(lng, lat, size=0.5):
    return [[[lng, lat], [lng + size, lat], [lng + size, lat - size], [lng, lat - size], [lng, lat]]]


@pytest.fixture
def csv_text():
    return "\ufeff" + "\r\n".join([HEADER] + ROWS) + "\r\n"


@pytest.fixture
def enrichment():
    return [
        {
            "wdpa_site_id": 101,
            "visitors_2024": 450000,
            "predator_index": 0.9,
            "has_big_five": True,
            "in_migration_route": True,
            "main_species": ["Wildebeest", "Lion"],
            "storymap_url": "https://storymaps.arcgis.com/",
        },
        {"wdpa_site_id": "102", "visitors_2024": None},
        {"visitors_2024": 5},
    ]


@pytest.fixture
def geojson():
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"SITE_ID": 101, "STATUS_YR": 1951},
                "geometry": {"type": "Polygon", "coordinates": _square(34.0, -1.5)},
            },
            {
                "type": "Feature",
                "properties": {"SITE_ID": 102},
                "geometry": {"type": "Polygon", "coordinates": _square(35.0, -1.0)},
            },
            {
                "type": "Feature",
                "properties": {"SITE_ID": 999, "STATUS_YR": 1900},
                "geometry": {"type": "Polygon", "coordinates": _square(36.0, -2.0)},
            },
            {
                "type": "Feature",
                "properties": {"NAME": "No id"},
                "geometry": {"type": "Polygon", "coordinates": _square(37.0, -2.0)},
            },
        ],
    }


@pytest.fixture
def data_settings(tmp_path, csv_text, geojson, enrichment):
    """Settings pointing at the fixture data written to a temp directory."""
    csv_path = tmp_path / "wdpa.csv"
    csv_path.write_text(csv_text, encoding="utf-8")
    geojson_path = tmp_path / "parks.json"
    geojson_path.write_text(json.dumps(geojson), encoding="utf-8")
    enrichment_path = tmp_path / "enrichment.json"
    enrichment_path.write_text(json.dumps(enrichment), encoding="utf-8")

    return Settings(
        parks_geojson=str(geojson_path),
        parks_csv=str(csv_path),
        parks_enrichment=str(enrichment_path),
        fetch_timeout=5,
        log_level="INFO",
    )
