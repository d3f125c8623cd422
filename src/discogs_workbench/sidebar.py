"""Sidebar list and featured cards over the active query subset.

Both are stateless views over the active queries and dispatch into the same
pick pathway as the palette:

- sidebar row click: load only
- featured card click: load and run (the workbench auto-loads in showcase)
"""

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .catalog import QueryDefinition, find_query, search_queries


NO_FEATURED_MESSAGE = "No featured demos found."


@dataclass(frozen=True)
class CatalogRow:
    """Display model of one catalog entry."""

    query_id: str
    title: str
    subtitle: str
    hotkey_label: str = ""

    @classmethod
    def for_query(cls, query: QueryDefinition, with_group: bool = True) -> "CatalogRow":
        if with_group:
            subtitle = f"{query.group.value} · {query.description}"
        else:
            subtitle = query.description
        return cls(
            query_id=query.id,
            title=query.title,
            subtitle=subtitle,
            hotkey_label=f"Alt+{query.hotkey}" if query.hotkey else "",
        )


class CatalogSidebar:
    """Searchable list of the full active subset (explore)."""

    def __init__(
        self,
        queries: Sequence[QueryDefinition],
        on_pick: Callable[[QueryDefinition, bool], Any],
    ):
        self.queries = list(queries)
        self.on_pick = on_pick
        self.search_text = ""

    @property
    def visible(self) -> list[QueryDefinition]:
        return search_queries(self.queries, self.search_text)

    def rows(self) -> list[CatalogRow]:
        return [CatalogRow.for_query(q) for q in self.visible]

    def set_search_text(self, text: str) -> list[CatalogRow]:
        self.search_text = text
        return self.rows()

    def click(self, query_id: str) -> None:
        query = find_query(self.queries, query_id)
        if query is None:
            return
        self.on_pick(query, False)


class FeaturedCards:
    """Always-visible cards for featured entries (showcase)."""

    def __init__(
        self,
        queries: Sequence[QueryDefinition],
        on_open: Callable[[QueryDefinition], Any],
    ):
        self.cards = [q for q in queries if q.featured]
        self.on_open = on_open

    def rows(self) -> list[CatalogRow]:
        return [CatalogRow.for_query(q, with_group=False) for q in self.cards]

    def click(self, query_id: str) -> None:
        query = find_query(self.cards, query_id)
        if query is None:
            return
        self.on_open(query)
