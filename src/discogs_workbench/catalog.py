"""Predefined query catalog and mode filtering.

The catalog is static, read-only data. Every filter preserves catalog order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence


class Mode(str, Enum):
    """Operating mode of the workbench."""

    EXPLORE = "explore"
    SHOWCASE = "showcase"


class QueryGroup(str, Enum):
    """Display group of a catalog entry."""

    OVERVIEW = "Overview"
    RELEASES = "Releases"
    ARTISTS = "Artists"
    MEMBERSHIPS = "Memberships"
    SHOWCASE = "Showcase"


@dataclass(frozen=True)
class QueryDefinition:
    """A predefined query.

    `modes=None` means the entry applies to every mode.
    """

    id: str
    title: str
    description: str
    tags: tuple[str, ...]
    group: QueryGroup
    sql: str
    hotkey: str | None = None
    featured: bool = False
    modes: frozenset[Mode] | None = None

    def applies_to(self, mode: Mode) -> bool:
        return self.modes is None or mode in self.modes

    @property
    def search_text(self) -> str:
        """Lowercased haystack used by palette and sidebar search."""
        return " ".join(
            [self.title, self.description, " ".join(self.tags), self.group.value]
        ).lower()


_EXPLORE = frozenset({Mode.EXPLORE})
_SHOWCASE = frozenset({Mode.SHOWCASE})


QUERY_CATALOG: tuple[QueryDefinition, ...] = (
    # --------------------------
    # Explore pack
    # --------------------------
    QueryDefinition(
        id="explore.whats_in_here",
        title="What's in here? (schema discovery)",
        description="List all tables available in the current database",
        tags=("explore", "schema", "discovery"),
        group=QueryGroup.OVERVIEW,
        modes=_EXPLORE,
        hotkey="1",
        sql="SHOW TABLES;",
    ),
    QueryDefinition(
        id="explore.releases.first20",
        title="First 20 releases (real data)",
        description="Inspect a random sample of real release rows",
        tags=("explore", "releases", "sample"),
        group=QueryGroup.RELEASES,
        modes=_EXPLORE,
        hotkey="2",
        sql="""
SELECT release_id, title, country, released
FROM releases
ORDER BY random()
LIMIT 20;
""".strip(),
    ),
    QueryDefinition(
        id="explore.releases.by_country",
        title="How many releases per country",
        description="Basic GROUP BY and ORDER BY example",
        tags=("explore", "releases", "aggregation"),
        group=QueryGroup.RELEASES,
        modes=_EXPLORE,
        hotkey="3",
        sql="""
SELECT country, COUNT(*) AS n
FROM releases
WHERE country IS NOT NULL
GROUP BY 1
ORDER BY n DESC
LIMIT 20;
""".strip(),
    ),
    QueryDefinition(
        id="explore.releases.search_keyword",
        title="Search releases by keyword",
        description="Search release titles using ILIKE",
        tags=("explore", "releases", "search"),
        group=QueryGroup.RELEASES,
        modes=_EXPLORE,
        hotkey="4",
        sql="""
SELECT release_id, title, country, released
FROM releases
WHERE title ILIKE '%jazz%'
ORDER BY released NULLS LAST
LIMIT 30;
""".strip(),
    ),
    QueryDefinition(
        id="explore.labels.top_labels",
        title="Which labels have the most releases?",
        description="Count distinct releases per label",
        tags=("explore", "labels", "aggregation"),
        group=QueryGroup.RELEASES,
        modes=_EXPLORE,
        hotkey="5",
        sql="""
SELECT label_name, COUNT(DISTINCT release_id) AS n_releases
FROM release_label_xref
WHERE label_name IS NOT NULL
GROUP BY 1
ORDER BY n_releases DESC
LIMIT 20;
""".strip(),
    ),
    QueryDefinition(
        id="explore.join.release_label",
        title="Basic join: release -> label",
        description="One row per release-label pair",
        tags=("explore", "join", "labels"),
        group=QueryGroup.RELEASES,
        modes=_EXPLORE,
        sql="""
SELECT r.release_id, r.title, x.label_name
FROM releases r
JOIN release_label_xref x ON x.release_id = r.release_id
ORDER BY r.release_id
LIMIT 30;
""".strip(),
    ),
    QueryDefinition(
        id="explore.join.release_artist",
        title="Basic join: release -> artist",
        description="Join via normalized artist name and name map",
        tags=("explore", "join", "artists"),
        group=QueryGroup.ARTISTS,
        modes=_EXPLORE,
        sql="""
SELECT
  r.release_id,
  r.title,
  a.name AS artist_name
FROM releases r
JOIN release_artists ra ON ra.release_id = r.release_id
JOIN artist_name_map am ON am.norm_name = ra.artist_norm
JOIN artists a ON a.artist_id = am.artist_id
ORDER BY r.release_id
LIMIT 30;
""".strip(),
    ),
    QueryDefinition(
        id="explore.alias.find_variants",
        title="Artist aliases (name variants)",
        description="Find alias names for a given artist",
        tags=("explore", "artists", "aliases"),
        group=QueryGroup.ARTISTS,
        modes=_EXPLORE,
        sql="""
SELECT
  a.artist_id,
  a.name,
  aa.alias_name
FROM artists a
JOIN artist_aliases aa ON aa.artist_id = a.artist_id
WHERE a.name ILIKE '%st germain%'
LIMIT 50;
""".strip(),
    ),
    QueryDefinition(
        id="explore.membership.top_groups",
        title="Groups with the most members",
        description="Simple aggregation on artist memberships",
        tags=("explore", "memberships", "aggregation"),
        group=QueryGroup.MEMBERSHIPS,
        modes=_EXPLORE,
        sql="""
SELECT
  group_id,
  max(group_name) AS group_name,
  COUNT(DISTINCT member_id) AS n_members
FROM artist_memberships
GROUP BY 1
ORDER BY n_members DESC
LIMIT 30;
""".strip(),
    ),
    QueryDefinition(
        id="explore.one_release.full_context",
        title="One release, full context",
        description="Inspect a single release with its associated labels",
        tags=("explore", "join", "context"),
        group=QueryGroup.SHOWCASE,
        modes=_EXPLORE,
        sql="""
WITH one AS (
  SELECT release_id
  FROM releases
  WHERE title IS NOT NULL
  ORDER BY release_id
  LIMIT 1
)
SELECT
  r.release_id,
  r.title,
  r.country,
  r.released,
  x.label_name
FROM releases r
JOIN one o ON o.release_id = r.release_id
LEFT JOIN release_label_xref x ON x.release_id = r.release_id
LIMIT 50;
""".strip(),
    ),
    # --------------------------
    # Showcase pack
    # --------------------------
    QueryDefinition(
        id="overview.tables",
        title="Dataset overview (row counts)",
        description="Sanity check: number of rows per table",
        tags=("overview", "sanity"),
        group=QueryGroup.OVERVIEW,
        modes=_SHOWCASE,
        featured=True,
        sql="""
SELECT 'releases' AS tbl, count(*) AS n FROM releases
UNION ALL SELECT 'release_artists', count(*) FROM release_artists
UNION ALL SELECT 'release_label_xref', count(*) FROM release_label_xref
UNION ALL SELECT 'artist_name_map', count(*) FROM artist_name_map
UNION ALL SELECT 'artists', count(*) FROM artists
UNION ALL SELECT 'artist_aliases', count(*) FROM artist_aliases
UNION ALL SELECT 'artist_memberships', count(*) FROM artist_memberships
ORDER BY tbl;
""".strip(),
    ),
    QueryDefinition(
        id="releases.top_countries",
        title="Top countries",
        description="Releases grouped by country",
        tags=("releases", "aggregation"),
        group=QueryGroup.RELEASES,
        modes=_SHOWCASE,
        featured=True,
        sql="""
SELECT country, COUNT(*) AS n
FROM releases
WHERE country IS NOT NULL
GROUP BY 1
ORDER BY n DESC
LIMIT 20;
""".strip(),
    ),
    QueryDefinition(
        id="releases.top_styles",
        title="Top styles",
        description="Explode denormalized styles and aggregate",
        tags=("releases", "unnest"),
        group=QueryGroup.RELEASES,
        modes=_SHOWCASE,
        featured=True,
        sql="""
WITH exploded AS (
  SELECT unnest(str_split(styles, ',')) AS style
  FROM releases
  WHERE styles IS NOT NULL
)
SELECT trim(style) AS style, count(*) AS n
FROM exploded
GROUP BY 1
ORDER BY n DESC
LIMIT 25;
""".strip(),
    ),
    QueryDefinition(
        id="membership.top_groups",
        title="Groups with the most members",
        description="Graph-style aggregation on memberships",
        tags=("memberships", "graph"),
        group=QueryGroup.MEMBERSHIPS,
        modes=_SHOWCASE,
        featured=True,
        sql="""
SELECT
  group_id,
  max(group_name) AS group_name,
  count(DISTINCT member_id) AS n_members
FROM artist_memberships
GROUP BY 1
ORDER BY n_members DESC
LIMIT 50;
""".strip(),
    ),
    QueryDefinition(
        id="showcase.release_rollup",
        title="Release rollup (artists + labels)",
        description="End-to-end joins with aggregation",
        tags=("showcase", "joins", "modeling"),
        group=QueryGroup.SHOWCASE,
        modes=_SHOWCASE,
        featured=True,
        sql="""
WITH br AS (
  SELECT release_id, title, country, released
  FROM releases
  WHERE country IS NOT NULL
  ORDER BY release_id
  LIMIT 50
),
artist_roll AS (
  SELECT
    ra.release_id,
    count(DISTINCT a.artist_id) AS n_artists,
    array_agg(DISTINCT a.name) AS artists
  FROM release_artists ra
  JOIN br ON br.release_id = ra.release_id
  JOIN artist_name_map am ON am.norm_name = ra.artist_norm
  JOIN artists a ON a.artist_id = am.artist_id
  GROUP BY 1
),
label_roll AS (
  SELECT
    rl.release_id,
    count(DISTINCT rl.label_norm) AS n_labels,
    array_agg(DISTINCT rl.label_name) AS labels
  FROM release_label_xref rl
  JOIN br ON br.release_id = rl.release_id
  GROUP BY 1
)
SELECT
  br.*,
  coalesce(ar.n_artists, 0) AS n_artists,
  coalesce(lr.n_labels, 0)  AS n_labels,
  ar.artists,
  lr.labels
FROM br
LEFT JOIN artist_roll ar ON ar.release_id = br.release_id
LEFT JOIN label_roll  lr ON lr.release_id = br.release_id;
""".strip(),
    ),
)


def filter_by_mode(
    catalog: Iterable[QueryDefinition], mode: Mode
) -> list[QueryDefinition]:
    """Entries without a `modes` restriction or listing `mode`."""
    return [q for q in catalog if q.applies_to(mode)]


def active_queries(
    mode: Mode, catalog: Sequence[QueryDefinition] = QUERY_CATALOG
) -> list[QueryDefinition]:
    """
    Derive the active subset for a mode.

    - Explore: every entry that applies to the mode
    - Showcase: only featured or Showcase-grouped entries among those
    """
    mode_queries = filter_by_mode(catalog, mode)
    if mode == Mode.SHOWCASE:
        return [
            q for q in mode_queries if q.featured or q.group == QueryGroup.SHOWCASE
        ]
    return mode_queries


def search_queries(
    queries: Sequence[QueryDefinition], text: str
) -> list[QueryDefinition]:
    """Case-insensitive substring filter; blank text returns everything."""
    needle = (text or "").strip().lower()
    if not needle:
        return list(queries)
    return [q for q in queries if needle in q.search_text]


def find_query(
    queries: Iterable[QueryDefinition], query_id: str
) -> QueryDefinition | None:
    """Look up an entry by id."""
    for q in queries:
        if q.id == query_id:
            return q
    return None


def find_by_hotkey(
    queries: Iterable[QueryDefinition], hotkey: str
) -> QueryDefinition | None:
    """First entry whose hotkey matches (case-insensitive)."""
    token = hotkey.lower()
    for q in queries:
        if q.hotkey is not None and q.hotkey.lower() == token:
            return q
    return None


def validate_catalog(catalog: Sequence[QueryDefinition]) -> list[str]:
    """Return a list of problems: duplicate ids, hotkeys or bad hotkey tokens."""
    errors = []
    seen_ids: set[str] = set()
    seen_hotkeys: set[str] = set()
    for q in catalog:
        if q.id in seen_ids:
            errors.append(f"Duplicate query id: {q.id}")
        seen_ids.add(q.id)

        if q.hotkey is None:
            continue
        if len(q.hotkey) != 1 or not q.hotkey.isalnum():
            errors.append(f"Invalid hotkey for {q.id}: {q.hotkey!r}")
        # Hotkeys only need to be unique within a mode
        for mode in q.modes or frozenset(Mode):
            key = f"{mode.value}:{q.hotkey.lower()}"
            if key in seen_hotkeys:
                errors.append(f"Duplicate hotkey {q.hotkey!r} in mode {mode.value}")
            seen_hotkeys.add(key)
    return errors
