"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from depgraph import __version__
from depgraph.cli import app
from depgraph.storage import IndexStore

runner = CliRunner()


class TestIndexCommand:
    """Tests for 'depgraph index'."""

    def test_index_project(self, sample_project: Path):
        result = runner.invoke(app, ["index", "--path", str(sample_project)])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(IndexStore.default_path(sample_project))
        assert IndexStore.default_path(sample_project).is_file()

    def test_index_nonexistent_path(self, temp_dir: Path):
        result = runner.invoke(app, ["index", "--path", str(temp_dir / "missing")])

        assert result.exit_code == 3
        assert "does not exist" in result.output


class TestImpactCommand:
    """Tests for 'depgraph impact'."""

    def test_impact_json(self, sample_project: Path):
        result = runner.invoke(
            app,
            ["impact", "Sources/Services/UserService.swift", "--lines", "12:15", "--path", str(sample_project)],
        )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["file"] == "Sources/Services/UserService.swift"
        assert payload["lines"] == {"start": 12, "end": 15}
        assert [d["name"] for d in payload["symbolsInRange"]["defined"]] == ["UserService", "save"]
        assert payload["impactedFiles"] == ["Sources/App/AppController.swift"]
        assert payload["usages"]["save"] == [{"file": "Sources/App/AppController.swift", "line": 9}]

    def test_impact_builds_index_on_demand(self, sample_project: Path):
        """No prior 'depgraph index' run is needed."""
        assert not IndexStore.default_path(sample_project).exists()

        result = runner.invoke(app, ["impact", "Sources/Models/User.swift", "-l", "16:16", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert IndexStore.default_path(sample_project).is_file()

    def test_impact_table(self, sample_project: Path):
        result = runner.invoke(
            app,
            ["impact", "Sources/Services/UserService.swift", "-l", "12:15", "-p", str(sample_project), "--table"],
        )

        assert result.exit_code == 0
        assert "Defined in range" in result.stdout
        assert "UserService" in result.stdout

    def test_inverted_range(self, sample_project: Path):
        result = runner.invoke(app, ["impact", "Sources/Models/User.swift", "-l", "30:10", "-p", str(sample_project)])

        assert result.exit_code == 2
        assert "30:10" in result.output
        assert not IndexStore.default_path(sample_project).exists()

    def test_malformed_range(self, sample_project: Path):
        result = runner.invoke(app, ["impact", "Sources/Models/User.swift", "-l", "abc", "-p", str(sample_project)])

        assert result.exit_code == 2
        assert "Invalid line range" in result.output

    def test_unknown_file(self, sample_project: Path):
        result = runner.invoke(app, ["impact", "Sources/Nope.swift", "-l", "1:2", "-p", str(sample_project)])

        assert result.exit_code == 4
        assert "Sources/Nope.swift" in result.output

    def test_missing_root(self, temp_dir: Path):
        result = runner.invoke(app, ["impact", "A.swift", "-l", "1:2", "-p", str(temp_dir / "missing")])

        assert result.exit_code == 3


class TestSymbolsCommand:
    """Tests for 'depgraph symbols'."""

    def test_symbols(self, sample_project: Path):
        result = runner.invoke(app, ["symbols", "Sources/Models/User.swift", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert "struct User" in result.stdout
        assert "initializer init" in result.stdout
        assert "enumCase admin" in result.stdout

    def test_symbols_top_level(self, sample_project: Path):
        result = runner.invoke(
            app, ["symbols", "Sources/Models/User.swift", "-p", str(sample_project), "--top-level"]
        )

        assert result.exit_code == 0
        assert "enum Role" in result.stdout
        assert "enumCase admin" not in result.stdout

    def test_symbols_unknown_file(self, sample_project: Path):
        result = runner.invoke(app, ["symbols", "Nope.swift", "-p", str(sample_project)])
        assert result.exit_code == 4


class TestStatusCommand:
    """Tests for 'depgraph status'."""

    def test_status_before_index(self, sample_project: Path):
        result = runner.invoke(app, ["status", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert "No index yet" in result.stdout

    def test_status_after_index(self, sample_project: Path):
        runner.invoke(app, ["index", "-p", str(sample_project)])

        result = runner.invoke(app, ["status", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert "Files: 5" in result.stdout
        assert "Stale: no" in result.stdout

    def test_status_reports_stale(self, sample_project: Path):
        runner.invoke(app, ["index", "-p", str(sample_project)])
        (sample_project / "Sources" / "Extra.swift").write_text("struct Extra {}\n", encoding="utf-8")

        result = runner.invoke(app, ["status", "-p", str(sample_project)])

        assert "Stale: yes" in result.stdout


class TestConformancesCommand:
    """Tests for 'depgraph conformances'."""

    def test_supertypes(self, sample_project: Path):
        result = runner.invoke(app, ["conformances", "User", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert "User -> Entity" in result.stdout
        assert "User -> CustomStringConvertible" in result.stdout

    def test_conformers(self, sample_project: Path):
        result = runner.invoke(app, ["conformances", "Repository", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert "UserService -> Repository" in result.stdout

    def test_unknown_type(self, sample_project: Path):
        result = runner.invoke(app, ["conformances", "Nothing", "-p", str(sample_project)])

        assert result.exit_code == 0
        assert result.stdout.count("(nothing)") == 2


class TestExportGraphCommand:
    """Tests for 'depgraph export-graph'."""

    def test_export_dot(self, sample_project: Path, temp_dir: Path):
        output = temp_dir / "graph.dot"

        result = runner.invoke(app, ["export-graph", "-p", str(sample_project), "-o", str(output)])

        assert result.exit_code == 0
        assert "Exported graph" in result.stdout
        content = output.read_text(encoding="utf-8")
        assert content.startswith("digraph DepGraph {")
        assert '"Sources/App/AppController.swift" -> "Sources/Services/UserService.swift"' in content

    def test_export_creates_missing_directories(self, sample_project: Path, temp_dir: Path):
        output = temp_dir / "reports" / "graphs" / "deps.dot"

        result = runner.invoke(app, ["export-graph", "-p", str(sample_project), "-o", str(output)])

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").startswith("digraph DepGraph {")

    def test_unwritable_output(self, sample_project: Path, temp_dir: Path):
        """A write failure is reported as an error, not a traceback."""
        output = temp_dir / "taken"
        output.mkdir()

        result = runner.invoke(app, ["export-graph", "-p", str(sample_project), "-o", str(output)])

        assert result.exit_code == 1
        assert "Cannot write graph" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


class TestVersion:
    """Tests for --version."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"depgraph v{__version__}" in result.stdout
