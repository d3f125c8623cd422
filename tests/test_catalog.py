"""Tests for the query catalog and mode filtering."""

import pytest

from discogs_workbench.catalog import (
    QUERY_CATALOG,
    Mode,
    QueryDefinition,
    QueryGroup,
    active_queries,
    filter_by_mode,
    find_by_hotkey,
    find_query,
    search_queries,
    validate_catalog,
)


def make_query(
    query_id: str,
    title: str = "Query",
    description: str = "",
    tags: tuple[str, ...] = (),
    group: QueryGroup = QueryGroup.RELEASES,
    **kwargs,
) -> QueryDefinition:
    return QueryDefinition(
        id=query_id,
        title=title,
        description=description,
        tags=tags,
        group=group,
        sql=f"SELECT '{query_id}'",
        **kwargs,
    )


class TestFilterByMode:
    """Tests for filter_by_mode and active_queries."""

    def test_entries_without_modes_apply_everywhere(self) -> None:
        catalog = [
            make_query("any"),
            make_query("explore-only", modes=frozenset({Mode.EXPLORE})),
            make_query("showcase-only", modes=frozenset({Mode.SHOWCASE})),
        ]
        assert [q.id for q in filter_by_mode(catalog, Mode.EXPLORE)] == ["any", "explore-only"]
        assert [q.id for q in filter_by_mode(catalog, Mode.SHOWCASE)] == ["any", "showcase-only"]

    @pytest.mark.parametrize("mode", list(Mode))
    def test_active_set_is_strict_subset_of_catalog(self, mode: Mode) -> None:
        active = active_queries(mode)
        assert set(q.id for q in active) < set(q.id for q in QUERY_CATALOG)

    @pytest.mark.parametrize("mode", list(Mode))
    def test_active_set_is_deterministic_and_ordered(self, mode: Mode) -> None:
        first = active_queries(mode)
        second = active_queries(mode)
        assert first == second

        positions = [QUERY_CATALOG.index(q) for q in first]
        assert positions == sorted(positions)

    def test_showcase_only_featured_or_showcase_group(self) -> None:
        for q in active_queries(Mode.SHOWCASE):
            assert q.featured or q.group == QueryGroup.SHOWCASE
            assert q.applies_to(Mode.SHOWCASE)

    def test_showcase_drops_plain_entries_without_modes(self) -> None:
        catalog = [
            make_query("plain"),
            make_query("featured", featured=True),
            make_query("grouped", group=QueryGroup.SHOWCASE),
        ]
        assert [q.id for q in active_queries(Mode.SHOWCASE, catalog)] == ["featured", "grouped"]

    def test_explore_respects_only_modes(self) -> None:
        catalog = [
            make_query("plain"),
            make_query("featured", featured=True),
            make_query("showcase-only", featured=True, modes=frozenset({Mode.SHOWCASE})),
        ]
        assert [q.id for q in active_queries(Mode.EXPLORE, catalog)] == ["plain", "featured"]

    def test_builtin_catalog_sizes(self) -> None:
        assert len(active_queries(Mode.EXPLORE)) == 10
        assert len(active_queries(Mode.SHOWCASE)) == 5


class TestSearch:
    """Tests for search_queries."""

    @pytest.fixture
    def catalog(self) -> list[QueryDefinition]:
        queries = [
            make_query("q1", title="Releases per country"),
            make_query("q2", description="Top labels"),
            make_query("q3", tags=("country", "geo")),
            make_query("q4", title="Artists"),
        ]
        queries += [make_query(f"filler{i}", title=f"Filler {i}") for i in range(6)]
        return queries

    def test_substring_match_across_fields(self, catalog: list[QueryDefinition]) -> None:
        result = search_queries(catalog, "country")
        assert [q.id for q in result] == ["q1", "q3"]

    def test_case_insensitive(self, catalog: list[QueryDefinition]) -> None:
        assert [q.id for q in search_queries(catalog, "  COUNTRY ")] == ["q1", "q3"]

    def test_matches_group(self, catalog: list[QueryDefinition]) -> None:
        catalog.append(make_query("grouped", group=QueryGroup.MEMBERSHIPS))
        assert [q.id for q in search_queries(catalog, "memberships")] == ["grouped"]

    def test_blank_returns_everything(self, catalog: list[QueryDefinition]) -> None:
        assert search_queries(catalog, "") == catalog
        assert search_queries(catalog, "   ") == catalog

    def test_idempotent(self, catalog: list[QueryDefinition]) -> None:
        assert search_queries(catalog, "label") == search_queries(catalog, "label")

    def test_no_match(self, catalog: list[QueryDefinition]) -> None:
        assert search_queries(catalog, "nothing-like-this") == []


class TestLookup:
    """Tests for id/hotkey lookup and catalog validation."""

    def test_find_query(self) -> None:
        assert find_query(QUERY_CATALOG, "overview.tables").title == "Dataset overview (row counts)"
        assert find_query(QUERY_CATALOG, "missing") is None

    def test_find_by_hotkey(self) -> None:
        explore = active_queries(Mode.EXPLORE)
        assert find_by_hotkey(explore, "2").id == "explore.releases.first20"
        assert find_by_hotkey(explore, "9") is None

    def test_builtin_catalog_is_valid(self) -> None:
        assert validate_catalog(QUERY_CATALOG) == []

    def test_validate_reports_duplicates(self) -> None:
        catalog = [
            make_query("same", hotkey="1"),
            make_query("same", hotkey="1"),
            make_query("bad", hotkey="F1"),
        ]
        errors = validate_catalog(catalog)
        assert "Duplicate query id: same" in errors
        assert any("Duplicate hotkey '1'" in e for e in errors)
        assert any("Invalid hotkey for bad" in e for e in errors)

    def test_hotkeys_may_repeat_across_modes(self) -> None:
        catalog = [
            make_query("a", hotkey="1", modes=frozenset({Mode.EXPLORE})),
            make_query("b", hotkey="1", modes=frozenset({Mode.SHOWCASE})),
        ]
        assert validate_catalog(catalog) == []

    def test_definitions_are_immutable(self) -> None:
        query = QUERY_CATALOG[0]
        with pytest.raises(AttributeError):
            query.sql = "DROP TABLE releases"  # type: ignore[misc]
