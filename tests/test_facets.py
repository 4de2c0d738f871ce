import pandas as pd

from talent_core.facets import (
    FACETS_BY_NAME,
    aggregate,
    attach_facet_columns,
    build_catalog,
    count_tokens,
    facet_table,
    resolve_facet,
    resolve_source_columns,
    search_options,
    strip_facet_columns,
)
from talent_core.normalize import UNKNOWN, normalize_simple


def test_count_tokens_orders_by_count_then_first_seen():
    tokens = ["A", "B", "C", "B", "C", "A", "B", "C", "B", "C", "B", "C", "A"]
    assert count_tokens(tokens) == [
        {"name": "B", "count": 5},
        {"name": "C", "count": 5},
        {"name": "A", "count": 3},
    ]


def test_count_tokens_flattens_multi_valued():
    assert count_tokens([["Java", "SQL"], ["SQL"], []]) == [
        {"name": "SQL", "count": 2},
        {"name": "Java", "count": 1},
    ]


def test_count_tokens_empty():
    assert count_tokens([]) == []
    assert count_tokens([[], []]) == []


def test_aggregate_over_mappings():
    rows = [{"client": "Acme"}, {"client": None}, {"client": "Acme"}]
    table = aggregate(rows, lambda r: normalize_simple(r.get("client")))
    assert table == [{"name": "Acme", "count": 2}, {"name": UNKNOWN, "count": 1}]


def test_location_table_drops_unknown(three_rows):
    table = facet_table(three_rows, FACETS_BY_NAME["location"])
    assert table == [{"name": "Bangalore", "count": 1}, {"name": "Gurgaon", "count": 1}]


def test_all_unknown_locations_give_empty_table():
    df = pd.DataFrame({"location": ["", None, "N/A"]})
    assert facet_table(df, FACETS_BY_NAME["location"]) == []


def test_missing_source_column_is_unknown_bucket(three_rows):
    table = facet_table(three_rows, FACETS_BY_NAME["role"])
    assert table == [{"name": UNKNOWN, "count": 3}]


def test_empty_frame_gives_empty_table():
    assert facet_table(pd.DataFrame(), FACETS_BY_NAME["skills"]) == []


def test_attach_and_strip_facet_columns(three_rows):
    prepared = attach_facet_columns(three_rows)
    assert "_facet_skills" in prepared.columns
    assert prepared["_facet_skills"].tolist() == [["Java", "SQL"], ["Java"], ["SQL"]]
    assert "_facet_skills" not in three_rows.columns
    assert list(strip_facet_columns(prepared).columns) == list(three_rows.columns)


def test_resolve_source_columns_prefers_declared_order():
    sources = resolve_source_columns(["City", "Location", "Skills"])
    assert sources["location"] == "Location"
    assert sources["skills"] == "Skills"
    assert sources["client"] is None


def test_resolve_facet_aliases_and_labels():
    assert resolve_facet("Skills").name == "skills"
    assert resolve_facet("Industry").name == "vertical"
    assert resolve_facet("IT / Non-IT").name == "it_type"
    assert resolve_facet("locations").name == "location"
    assert resolve_facet("salary") is None
    assert resolve_facet(None) is None


def test_search_options_case_insensitive(three_rows):
    catalog = build_catalog(three_rows)
    assert search_options(catalog, "client", "ac") == [{"name": "Acme", "count": 2}]
    assert len(search_options(catalog, "client", "")) == 2
    assert search_options(catalog, "unknown-facet", "a") == []


def test_aggregate_is_deterministic(three_rows):
    extract = FACETS_BY_NAME["skills"].normalizer
    first = aggregate(three_rows, lambda r: extract(r.get("skills")))
    second = aggregate(three_rows, lambda r: extract(r.get("skills")))
    assert first == second == [{"name": "Java", "count": 2}, {"name": "SQL", "count": 2}]
