"""Tests for Graphviz DOT export."""

from pathlib import Path

from depgraph.graph import Index
from depgraph.graph_export import export_dot, file_dependency_edges

CONTROLLER = "Sources/App/AppController.swift"
SERVICE = "Sources/Services/UserService.swift"


class TestFileDependencyEdges:
    """Tests for file_dependency_edges."""

    def test_edges_carry_symbol_names(self, sample_index: Index):
        edges = file_dependency_edges(sample_index)

        assert edges[(CONTROLLER, SERVICE)] == {"UserService", "save"}

    def test_no_self_edges(self, sample_index: Index):
        assert all(src != dst for src, dst in file_dependency_edges(sample_index))

    def test_unresolved_names_make_no_edges(self, sample_index: Index):
        names = set().union(*file_dependency_edges(sample_index).values())
        assert "UUID" not in names
        assert "print" not in names


class TestExportDot:
    """Tests for export_dot."""

    def test_full_graph(self, sample_index: Index, temp_dir: Path):
        output = temp_dir / "deps.dot"
        export_dot(sample_index, output)

        content = output.read_text(encoding="utf-8")
        assert content.startswith("digraph DepGraph {\n")
        assert content.rstrip().endswith("}")
        for path in sample_index.files:
            assert f'"{path}";' in content
        assert f'"{CONTROLLER}" -> "{SERVICE}" [label="UserService, save"];' in content

    def test_focus_keeps_neighbours_only(self, sample_index: Index, temp_dir: Path):
        output = temp_dir / "focus.dot"
        export_dot(sample_index, output, focus="Protocols/")

        content = output.read_text(encoding="utf-8")
        assert '"Sources/Protocols/Repository.swift";' in content
        assert '"Sources/Services/UserService.swift";' in content
        assert f'"{CONTROLLER}" -> "{SERVICE}"' not in content
