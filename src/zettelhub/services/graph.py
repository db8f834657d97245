"""GraphService — link neighbourhood of a note via NetworkX.

Uses ``self._vault.graph.graph`` (triggers the lazy build) and returns
nodes and edges within *depth* hops, following links in both
directions.  The DOT rendering is produced here so ``zh graph --format
dot`` output can be piped straight into Graphviz.
"""

from __future__ import annotations

from typing import Any

import networkx as nx

from zettelhub.infrastructure.repositories.references import StoreReferenceLookup
from zettelhub.services.base import BaseService
from zettelhub.services.result import ErrorCode, ServiceResult
from zettelhub.services.telemetry import annotate, trace_span, traced

_MAX_DEPTH = 5


def _dot_quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def to_dot(center: str, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]) -> str:
    """Render a neighbourhood as a Graphviz digraph."""
    lines = ["digraph notes {", "  rankdir=LR;", "  node [shape=box];"]
    for node in nodes:
        attrs = [f"label={_dot_quote(node['title'] or node['id'])}"]
        if node["broken"]:
            attrs.append("style=dashed")
        elif node["id"] == center:
            attrs.append("style=bold")
        lines.append(f"  {_dot_quote(node['id'])} [{', '.join(attrs)}];")
    for edge in edges:
        label = _dot_quote(",".join(edge["link_types"]))
        source, target = _dot_quote(edge["source"]), _dot_quote(edge["target"])
        lines.append(f"  {source} -> {target} [label={label}];")
    lines.append("}")
    return "\n".join(lines)


class GraphService(BaseService):
    """Graph views over the link table."""

    @traced
    def neighbourhood(self, reference: str, *, depth: int = 1) -> ServiceResult:
        """Notes within *depth* links of *reference* (either direction).

        Broken links appear as nodes with ``broken: True`` whose ``id`` is
        ``"?<reference>"``.
        """
        op = "graph"
        with self._vault.engine.connect() as conn:
            center = StoreReferenceLookup(conn).resolve(reference)
        if center is None:
            return ServiceResult.failure(
                op,
                ErrorCode.NOT_FOUND,
                f"No note matches '{reference}' (by id, title, or alias)",
                reference=reference,
            )

        depth = max(1, min(depth, _MAX_DEPTH))
        with trace_span("build_graph"):
            g = self._vault.graph.graph

        with trace_span("ego_graph", depth=depth):
            sub = nx.ego_graph(g, center, radius=depth, undirected=True)
            annotate(nodes=sub.number_of_nodes())

        distances = nx.single_source_shortest_path_length(sub.to_undirected(as_view=True), center)
        nodes = [
            {
                "id": node_id,
                "title": attrs.get("title") or "",
                "path": attrs.get("path"),
                "broken": bool(attrs.get("broken")),
                "distance": distances.get(node_id, 0),
            }
            for node_id, attrs in sorted(
                sub.nodes(data=True), key=lambda item: (distances.get(item[0], 0), item[0])
            )
        ]
        edges = [
            {"source": s, "target": t, "link_types": data["link_types"]}
            for s, t, data in sorted(sub.edges(data=True), key=lambda e: (e[0], e[1]))
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": center,
                "depth": depth,
                "nodes": nodes,
                "edges": edges,
                "dot": to_dot(center, nodes, edges),
            },
        )
