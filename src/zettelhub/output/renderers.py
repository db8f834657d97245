"""Operation-specific Rich renderers for ServiceResult.

Renderers write to a StringIO-backed Console and are dispatched by
``result.op`` in :func:`render_result`.  Unknown ops fall through to a
generic key-value renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from zettelhub.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from zettelhub.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to text via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Ids only: one per line for lists, the single id otherwise."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    data = result.data
    if result.op == "tags":
        return "\n".join(str(item["tag"]) for item in data.get("items", []))
    if result.op == "graph":
        return "\n".join(n["id"] for n in data.get("nodes", []) if not n["broken"])
    items = data.get("items")
    if isinstance(items, list):
        return "\n".join(i["id"] for i in items if isinstance(i, dict) and i.get("id"))
    for key in ("id", "indexed"):
        if data.get(key):
            return str(data[key])
    return ""


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult, note: str = "") -> None:
    line = Text.assemble(("OK", "zh.ok"), (f"  {result.op}", "zh.op"))
    if note:
        line.append(f"  {note}")
    console.print(line)


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="zh.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="zh.id")
    elif key in ("path", "destination"):
        v = Text(str(value), style="zh.path")
    elif key == "title":
        v = Text(str(value), style="zh.title")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Telemetry span tree (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(f"    {key}: {value}")


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    line = Text(" " * indent)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span.get('name', '?')}")
    annotations = span.get("annotations") or {}
    if annotations:
        line.append("  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")")
    console.print(line)
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


def _failures(console: Console, failures: list[dict[str, Any]], omitted: int = 0) -> None:
    for entry in failures:
        console.print(
            Text("  skipped ", style="zh.warning"),
            Text(str(entry["path"]), style="zh.path"),
            Text(f": {entry['reason']}"),
            sep="",
        )
    if omitted:
        console.print(f"  ... and {omitted} more")


def _link_table(items: list[dict[str, Any]], *, id_label: str) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column(id_label, style="zh.id", no_wrap=True)
    table.add_column("Title", style="zh.title")
    table.add_column("Path", style="zh.path")
    table.add_column("Kind")
    table.add_column("Reference")
    for item in items:
        note_id = item.get("id")
        if item.get("broken"):
            id_cell = Text("broken", style="zh.broken")
        else:
            id_cell = Text(str(note_id or ""))
        table.add_row(
            id_cell,
            str(item.get("title") or ""),
            str(item.get("path") or ""),
            str(item.get("link_type", "")),
            str(item.get("reference", "")),
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text.assemble(("ERROR", "zh.error"), (f"  {result.op}", "zh.op"), f": {msg}"))
    _failures(console, result.data.get("failures", []))
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")


# ── Indexing renderers ────────────────────────────────────────────────


def _render_reindex(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("found", "indexed", "skipped", "removed", "links", "unresolved", "ids_written"):
        _field(console, key, d.get(key, 0))
    if verbose and d.get("removed_ids"):
        _field(console, "removed_ids", ", ".join(d["removed_ids"]))
    _failures(console, d.get("failures", []), d.get("failures_omitted", 0))


def _render_index_file(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "id", d.get("indexed"))
    _field(console, "path", d.get("path"))
    _field(console, "links", f"{d.get('links', 0)} ({d.get('unresolved', 0)} unresolved)")
    _field(console, "tags", d.get("tags", 0))
    if d.get("id_written"):
        _field(console, "id_written", "yes")
    if d.get("relinked"):
        _field(console, "relinked", ", ".join(d["relinked"]))
    if d.get("renamed_from"):
        _field(console, "renamed_from", d["renamed_from"])
        for path in d.get("rewritten", []):
            console.print(
                Text("  updated links in ", style="dim"), Text(path, style="zh.path"), sep=""
            )


def _render_import(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    note = "(dry run, nothing written)" if d.get("dry_run") else ""
    _status_line(console, result, note)
    for item in d.get("items", []):
        console.print()
        console.print(
            Text(item["id"], style="zh.id"),
            Text(f"  {item['source']}", style="zh.path"),
            Text(" -> "),
            Text(item["destination"], style="zh.path"),
            sep="",
        )
        for change in item["changes"]:
            console.print(f"    {change}")
        for entry in item["ambiguous"]:
            console.print(
                Text(f"    ambiguous ({entry['target']}): ", style="zh.warning"),
                Text(", ".join(entry["candidates"])),
                sep="",
            )
    console.print()
    _field(console, "files", d.get("count", 0))
    if not d.get("dry_run"):
        _field(console, "indexed", len(d.get("indexed", [])))
    _failures(console, d.get("failures", []))


# ── Query renderers ───────────────────────────────────────────────────


def _render_resolve(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("id", "title", "path"):
        _field(console, key, result.data.get(key, ""))


def _render_note(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    lines = [f"path: {d.get('path', '')}", f"type: {d.get('type', '')}"]
    if d.get("aliases"):
        lines.append(f"aliases: {', '.join(d['aliases'])}")
    tags = sorted({t["tag"] for t in d.get("tags", [])})
    if tags:
        lines.append(f"tags: {', '.join(tags)}")
    lines.append(
        f"links: {d.get('links_out', 0)} out ({d.get('links_broken', 0)} broken), "
        f"{d.get('links_in', 0)} in"
    )
    body = str(d.get("body") or "").strip()
    content = "\n".join(lines) + (f"\n\n{body}" if body else "")
    title = Text(f"{d.get('id', '?')}  {d.get('title') or '(untitled)'}")
    console.print(Panel(content, title=title, border_style="dim", expand=False))


def _render_links(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    items = d.get("items", [])
    label = "Target" if result.op == "links" else "Source"
    console.print(Text(f"{d.get('id')}  {d.get('title') or ''}", style="zh.title"))
    if items:
        console.print(_link_table(items, id_label=label))
    summary = f"\n{d.get('count', len(items))} links"
    if result.op == "links":
        summary += f", {d.get('broken', 0)} broken"
    console.print(summary)


def _render_search(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    ranked = any(i.get("score") is not None for i in items)
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="zh.id", no_wrap=True)
    table.add_column("Title", style="zh.title")
    table.add_column("Type")
    table.add_column("Date")
    table.add_column("Path", style="zh.path")
    if ranked:
        table.add_column("Score", style="zh.score", justify="right")
    if verbose:
        table.add_column("Snippet", style="dim")
    for item in items:
        row = [
            str(item.get("id", "")),
            str(item.get("title") or ""),
            str(item.get("type") or ""),
            str(item.get("date") or ""),
            str(item.get("path") or ""),
        ]
        if ranked:
            row.append(f"{float(item['score']):.4f}" if item.get("score") is not None else "")
        if verbose:
            row.append(str(item.get("snippet") or ""))
        table.add_row(*row)
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} results")


def _render_tags(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Tag", style="zh.tag")
    table.add_column("Notes", justify="right")
    for item in items:
        table.add_row(str(item["tag"]), str(item["count"]))
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} tags")


def _render_tag_rename(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result, f"{d['old']} -> {d['new']} in {d.get('count', 0)} notes")
    for item in d.get("items", []):
        console.print(
            Text("  "), Text(item["id"], style="zh.id"), Text(f"  {item['path']}"), sep=""
        )
    _failures(console, d.get("failures", []))


def _render_graph(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    nodes = {n["id"]: n for n in d.get("nodes", [])}
    _status_line(console, result, f"depth {d.get('depth')}")

    def _label(node_id: str) -> Text:
        node = nodes.get(node_id, {})
        if node.get("broken"):
            return Text(f"{node_id} (broken)", style="zh.broken")
        return Text.assemble((node_id, "zh.id"), f"  {node.get('title') or ''}")

    for node in nodes.values():
        console.print(Text(f"  [{node['distance']}] "), _label(node["id"]), sep="")
    edges = d.get("edges", [])
    if edges:
        console.print()
        for edge in edges:
            kinds = ",".join(edge["link_types"])
            console.print(
                Text("  "),
                _label(edge["source"]),
                Text(f"  --{kinds}-->  ", style="dim"),
                _label(edge["target"]),
                sep="",
            )


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, list):
            _field(console, key, ", ".join(str(v) for v in value) if value else "-")
        else:
            _field(console, key, value)


_OP_RENDERERS: dict[str, Any] = {
    # Indexing
    "reindex": _render_reindex,
    "index_file": _render_index_file,
    "import": _render_import,
    # Query
    "resolve": _render_resolve,
    "get": _render_note,
    "links": _render_links,
    "backlinks": _render_links,
    "search": _render_search,
    "tags": _render_tags,
    "tag_rename": _render_tag_rename,
    # Graph
    "graph": _render_graph,
}
