"""Tests for the WDPA CSV -> park metadata pipeline."""

import pandas as pd

from wdpa_meta import (
    build_parks_meta,
    collation_key,
    index_enrichment,
    is_tourism_park,
    iso3_to_country_name,
    parks_meta_frame,
    parse_csv,
    parse_header,
    split_csv_line,
    strip_quotes,
    to_number,
)
from conftest import HEADER


class TestCsvParsing:
    def test_quoted_comma_does_not_split(self):
        cells = split_csv_line('1,"Name, Reserve",KEN')
        assert cells == ["1", '"Name, Reserve"', "KEN"]

    def test_strip_quotes_removes_one_layer(self):
        assert strip_quotes('"Name, Reserve"') == "Name, Reserve"
        assert strip_quotes("plain") == "plain"
        # doubled inner quotes are not un-escaped
        assert strip_quotes('"He said ""hi"""') == 'He said ""hi""'

    def test_header_strips_bom_and_whitespace(self):
        assert parse_header("\ufeffSITE_ID, NAME ,ISO3") == {"SITE_ID": 0, "NAME": 1, "ISO3": 2}

    def test_header_only_gives_no_rows(self):
        assert parse_csv(HEADER) == []
        assert parse_csv(HEADER + "\r\n") == []
        assert parse_csv("") == []

    def test_short_rows_fill_missing_cells(self):
        rows = parse_csv("A,B,C\n1,2")
        assert rows == [{"A": "1", "B": "2", "C": ""}]

    def test_crlf_and_lf_line_endings(self):
        rows = parse_csv("A,B\r\n1,2\n3,4")
        assert [r["A"] for r in rows] == ["1", "3"]


class TestCoercion:
    def test_to_number(self):
        assert to_number("12.5") == 12.5
        assert to_number(" 1951 ") == 1951.0
        assert to_number(3) == 3.0

    def test_to_number_never_raises(self):
        for bad in ["", "abc", "nan", "inf", None, True]:
            assert to_number(bad) is None

    def test_to_number_rejects_digit_grouping(self):
        assert to_number("1_951") is None
        assert to_number("1_000.5") is None

    def test_iso3_lookup(self):
        assert iso3_to_country_name("TZA") == "Tanzania"
        assert iso3_to_country_name("ZAF") == "South Africa"
        assert iso3_to_country_name("FRA") == "FRA"
        assert iso3_to_country_name("") == "Unknown"
        assert iso3_to_country_name(None) == "Unknown"


class TestTourismFilter:
    def test_national_park_outside_strict_categories_is_kept(self):
        assert is_tourism_park("National Park", "II")
        assert is_tourism_park("Community Conservancy", "")
        assert is_tourism_park("game reserve", "IV")

    def test_strict_categories_always_excluded(self):
        assert not is_tourism_park("National Park", "Ia")
        assert not is_tourism_park("National Park", "Ib")

    def test_other_designations_excluded(self):
        assert not is_tourism_park("Forest Reserve", "VI")
        assert not is_tourism_park("", "II")


class TestEnrichmentIndex:
    def test_keys_are_strings_and_last_wins(self):
        records = [
            {"wdpa_site_id": 101, "has_big_five": True},
            {"wdpa_site_id": 101.0, "has_big_five": False},
            {"wdpa_site_id": None, "has_big_five": True},
            "not a record",
        ]
        index = index_enrichment(records)
        assert list(index) == ["101"]
        assert index["101"]["has_big_five"] is False

    def test_no_records(self):
        assert index_enrichment(None) == {}


class TestBuildParksMeta:
    def test_filters_and_sorts(self, csv_text):
        parks = build_parks_meta(csv_text)
        assert [p.id for p in parks] == ["102", "101", "105", "106"]

        keys = [(collation_key(p.country), collation_key(p.name)) for p in parks]
        assert all(a <= b for a, b in zip(keys, keys[1:]))

    def test_strict_and_non_tourism_rows_dropped(self, csv_text):
        ids = {p.id for p in build_parks_meta(csv_text)}
        assert "103" not in ids  # Ia
        assert "107" not in ids  # Ib
        assert "104" not in ids  # forest reserve

    def test_field_mapping(self, csv_text):
        parks = {p.id: p for p in build_parks_meta(csv_text)}

        serengeti = parks["101"]
        assert serengeti.name == "Serengeti National Park"
        assert serengeti.localName == "Serengeti"
        assert serengeti.country == "Tanzania"
        assert serengeti.countryISO3 == "TZA"
        assert serengeti.area_km2 == 14763
        assert serengeti.statusYear == 1951
        assert serengeti.govType == "Federal agency"

        assert parks["102"].govType == "Narok County"

    def test_bad_cells_degrade_to_defaults(self, csv_text):
        parks = {p.id: p for p in build_parks_meta(csv_text)}

        tarangire = parks["105"]
        assert tarangire.name == "Tarangire National Park, Manyara"
        assert tarangire.area_km2 is None
        assert tarangire.statusYear is None
        assert tarangire.govType == "Unknown"

        unnamed = parks["106"]
        assert unnamed.name == "Parc National"
        assert unnamed.country == "XYZ"
        assert unnamed.iucnCat == ""

    def test_enrichment_overlay(self, csv_text, enrichment):
        parks = {p.id: p for p in build_parks_meta(csv_text, enrichment)}

        assert parks["101"].has_big_five is True
        assert parks["101"].in_migration_route is True
        assert parks["101"].visitors_2024 == 450000
        assert parks["101"].main_species == ["Wildebeest", "Lion"]
        assert parks["101"].storymap_url == "https://storymaps.arcgis.com/"

        # matched by string id, missing values fall back to defaults
        assert parks["102"].visitors_2024 == 0
        assert parks["102"].main_species == []
        assert parks["102"].has_big_five is False

        assert parks["105"].has_big_five is False
        assert parks["105"].storymap_url == ""

    def test_enrichment_never_replaces_base_fields(self, csv_text):
        extras = [{"wdpa_site_id": 101, "name": "Other", "country": "Kenya", "has_big_five": 1}]
        park = {p.id: p for p in build_parks_meta(csv_text, extras)}["101"]
        assert park.name == "Serengeti National Park"
        assert park.country == "Tanzania"
        assert park.has_big_five is True

    def test_duplicate_site_id_keeps_later_row(self):
        text = "\n".join(
            [
                HEADER,
                "1,Old Name National Park,,KEN,National Park,II,,,,",
                "1,New Name National Park,,KEN,National Park,II,,,,",
            ]
        )
        parks = build_parks_meta(text)
        assert len(parks) == 1
        assert parks[0].name == "New Name National Park"

    def test_sort_ignores_case_and_accents(self):
        text = "\n".join(
            [
                HEADER,
                "1,Zakouma National Park,,KEN,National Park,II,,,,",
                "2,iSimangaliso Wetland Park Game Reserve,,KEN,Game Reserve,II,,,,",
                "3,\u00c9tosha National Park,,KEN,National Park,II,,,,",
                "4,Amboseli National Park,,KEN,National Park,II,,,,",
            ]
        )
        names = [p.name for p in build_parks_meta(text)]
        assert names == [
            "Amboseli National Park",
            "\u00c9tosha National Park",
            "iSimangaliso Wetland Park Game Reserve",
            "Zakouma National Park",
        ]

    def test_collation_key_ties_break_on_accent_then_case(self):
        words = ["Reserve", "r\u00e9serve", "reserve", "Ile", "\u00cele"]
        ordered = sorted(words, key=collation_key)
        assert ordered == ["Ile", "\u00cele", "Reserve", "reserve", "r\u00e9serve"]

    def test_empty_inputs(self):
        assert build_parks_meta("") == []
        assert build_parks_meta(HEADER) == []
        assert build_parks_meta("\ufeff" + HEADER + "\r\n") == []


def test_parks_meta_frame(csv_text):
    df = parks_meta_frame(build_parks_meta(csv_text))
    assert isinstance(df, pd.DataFrame)
    assert len(df) == 4
    assert {"id", "country", "statusYear", "main_species"} <= set(df.columns)

    empty = parks_meta_frame([])
    assert empty.empty
    assert "id" in empty.columns
