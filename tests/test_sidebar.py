"""Tests for the catalog sidebar and featured cards."""

from discogs_workbench.catalog import Mode, active_queries
from discogs_workbench.sidebar import CatalogRow, CatalogSidebar, FeaturedCards


class TestCatalogSidebar:
    """Tests for the explore sidebar."""

    def test_rows_follow_catalog_order(self) -> None:
        sidebar = CatalogSidebar(active_queries(Mode.EXPLORE), lambda q, run: None)
        rows = sidebar.rows()

        assert len(rows) == 10
        assert rows[0] == CatalogRow(
            query_id="explore.whats_in_here",
            title="What's in here? (schema discovery)",
            subtitle="Overview · List all tables available in the current database",
            hotkey_label="Alt+1",
        )
        assert rows[5].hotkey_label == ""

    def test_search_filters_rows(self) -> None:
        sidebar = CatalogSidebar(active_queries(Mode.EXPLORE), lambda q, run: None)
        rows = sidebar.set_search_text("ALIASES")
        assert [r.query_id for r in rows] == ["explore.alias.find_variants"]

        assert len(sidebar.set_search_text("")) == 10

    def test_click_loads_without_running(self) -> None:
        picks = []
        sidebar = CatalogSidebar(
            active_queries(Mode.EXPLORE), lambda q, run: picks.append((q.id, run))
        )
        sidebar.click("explore.labels.top_labels")
        sidebar.click("unknown")

        assert picks == [("explore.labels.top_labels", False)]


class TestFeaturedCards:
    """Tests for showcase cards."""

    def test_only_featured_entries(self) -> None:
        cards = FeaturedCards(active_queries(Mode.SHOWCASE), lambda q: None)
        assert [r.query_id for r in cards.rows()] == [
            "overview.tables",
            "releases.top_countries",
            "releases.top_styles",
            "membership.top_groups",
            "showcase.release_rollup",
        ]
        assert cards.rows()[1].subtitle == "Releases grouped by country"

    def test_explore_subset_has_no_cards(self) -> None:
        cards = FeaturedCards(active_queries(Mode.EXPLORE), lambda q: None)
        assert cards.rows() == []

    def test_click_opens_card(self) -> None:
        opened = []
        cards = FeaturedCards(active_queries(Mode.SHOWCASE), lambda q: opened.append(q.id))
        cards.click("releases.top_styles")
        cards.click("explore.whats_in_here")

        assert opened == ["releases.top_styles"]
