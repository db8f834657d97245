"""GraphEngine — lazy-built NetworkX graph from the notes and links tables.

Rebuilt per invocation, no cross-invocation cache.  Commands that don't
need graph operations never build it.  Broken links appear as nodes
keyed ``"?<reference>"`` with ``broken=True`` so they can be rendered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import networkx as nx
from sqlalchemy import select

from zettelhub.infrastructure.database.schema import links, notes

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

type _Graph = nx.DiGraph


def broken_node_key(reference: str) -> str:
    return f"?{reference}"


class GraphEngine:
    """Lazy-loading graph engine backed by SQLite link data."""

    def __init__(self, db: Engine) -> None:
        self._db = db
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building from DB on first access."""
        if self._graph is None:
            self._graph = self._build_from_db()
        return self._graph

    def invalidate(self) -> None:
        """Clear the cached graph, forcing rebuild on next access."""
        self._graph = None

    def _build_from_db(self) -> _Graph:
        """Build a DiGraph; parallel links of different types merge into one edge.

        Each edge carries ``link_types`` (sorted list) and ``references``.
        """
        g: _Graph = nx.DiGraph()
        with self._db.connect() as conn:
            for row in conn.execute(select(notes.c.id, notes.c.title, notes.c.path)):
                g.add_node(row.id, title=row.title, path=row.path, broken=False)

            for row in conn.execute(select(links)):
                if row.source_id not in g:
                    continue
                target = row.target_id if row.target_id in g else None
                if target is None:
                    target = broken_node_key(row.reference)
                    if target not in g:
                        g.add_node(target, title=row.reference, path=None, broken=True)
                if g.has_edge(row.source_id, target):
                    data = g.edges[row.source_id, target]
                    data["link_types"] = sorted({*data["link_types"], row.link_type})
                    data["references"].append(row.reference)
                else:
                    g.add_edge(
                        row.source_id,
                        target,
                        link_types=[row.link_type],
                        references=[row.reference],
                    )
        return g
