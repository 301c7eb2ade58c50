"""Graph export helpers producing Graphviz DOT for the file dependency graph."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Set, Tuple

from .graph import Index


def file_dependency_edges(index: Index) -> Dict[Tuple[str, str], Set[str]]:
    """Map ``(referencing file, declaring file)`` to the symbol names linking them.

    Unresolved references never produce an edge, and a file never depends
    on itself.
    """
    edges: Dict[Tuple[str, str], Set[str]] = {}
    for src in sorted(index.references):
        for ref in index.references[src]:
            for dst in index.files_declaring(ref.name):
                if dst == src:
                    continue
                edges.setdefault((src, dst), set()).add(ref.name)
    return edges


def export_dot(index: Index, output_file: Path, focus: str = "") -> None:
    edges = file_dependency_edges(index)
    selected = _focused_subgraph(sorted(index.files), edges, focus)

    lines = ["digraph DepGraph {"]
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box];")

    for path in selected["nodes"]:
        lines.append(f'  "{_esc(path)}";')

    for src, dst in selected["edges"]:
        names = sorted(edges[(src, dst)])
        label = ", ".join(names[:3]) + (f" +{len(names) - 3}" if len(names) > 3 else "")
        lines.append(f'  "{_esc(src)}" -> "{_esc(dst)}" [label="{_esc(label)}"];')

    lines.append("}")
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _focused_subgraph(
    files: List[str],
    edges: Dict[Tuple[str, str], Set[str]],
    focus: str,
) -> Dict[str, List]:
    if not focus:
        return {"nodes": files, "edges": sorted(edges)}

    focus_files = {path for path in files if focus in path}
    if not focus_files:
        return {"nodes": files, "edges": sorted(edges)}

    edge_subset = sorted(e for e in edges if e[0] in focus_files or e[1] in focus_files)
    node_subset = set(focus_files)
    for src, dst in edge_subset:
        node_subset.add(src)
        node_subset.add(dst)
    return {"nodes": sorted(node_subset), "edges": edge_subset}


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
