"""Tests for the load-or-rebuild orchestrator."""

import threading
from pathlib import Path

import pytest

from depgraph.errors import IndexBuildCancelled, InvalidRangeError, UnknownFileError
from depgraph.orchestrator import IndexOrchestrator
from depgraph.storage import IndexStore

USER = "Sources/Models/User.swift"


class TestLoadIndex:
    """Tests for IndexOrchestrator.load_index."""

    def test_builds_when_missing(self, sample_project: Path):
        orchestrator = IndexOrchestrator(sample_project)
        assert not orchestrator.index_path.exists()

        index = orchestrator.load_index()

        assert orchestrator.index_path == IndexStore.default_path(sample_project)
        assert orchestrator.index_path.is_file()
        assert len(index.files) == 5

    def test_reuses_saved_index(self, sample_project: Path):
        built, _ = IndexOrchestrator(sample_project).index()

        loaded = IndexOrchestrator(sample_project).load_index()

        assert loaded == built

    def test_caches_loaded_index(self, sample_project: Path):
        orchestrator = IndexOrchestrator(sample_project)
        assert orchestrator.load_index() is orchestrator.load_index()

    def test_rebuilds_corrupt_index(self, sample_project: Path):
        orchestrator = IndexOrchestrator(sample_project)
        orchestrator.index_path.parent.mkdir(parents=True)
        orchestrator.index_path.write_bytes(b"garbage" * 100)

        index = orchestrator.load_index()

        assert len(index.files) == 5
        assert IndexStore().load(orchestrator.index_path) == index

    def test_rebuilds_stale_index(self, sample_project: Path):
        """A file added after indexing is picked up on the next query."""
        IndexOrchestrator(sample_project).index()
        (sample_project / "Sources" / "Extra.swift").write_text("struct Extra {}\n", encoding="utf-8")

        index = IndexOrchestrator(sample_project).load_index()

        assert index.has_file("Sources/Extra.swift")

    def test_cancelled_index_saves_nothing(self, sample_project: Path):
        cancel = threading.Event()
        cancel.set()
        orchestrator = IndexOrchestrator(sample_project)

        with pytest.raises(IndexBuildCancelled):
            orchestrator.index(cancel_event=cancel)
        assert not orchestrator.index_path.exists()

    def test_project_config_is_applied(self, make_project):
        """Exclusions from .depgraph.toml apply to the build and to staleness checks."""
        root = make_project({
            ".depgraph.toml": '[index]\nexclude = ["Vendor"]\n',
            "App.swift": "struct App {}\n",
            "Vendor/Lib.swift": "struct Lib {}\n",
        })
        orchestrator = IndexOrchestrator(root)

        index, _ = orchestrator.index()

        assert list(index.files) == ["App.swift"]
        assert IndexOrchestrator(root).status()["stale"] is False


class TestQueries:
    """Tests for the query methods."""

    def test_impact(self, sample_project: Path):
        result = IndexOrchestrator(sample_project).impact(USER, 15, 18)
        assert [d.name for d in result.defined][:1] == ["Role"]
        assert result.impacted_files == ["Sources/Extensions/User+Display.swift"]

    def test_inverted_range_does_not_build(self, sample_project: Path):
        orchestrator = IndexOrchestrator(sample_project)

        with pytest.raises(InvalidRangeError):
            orchestrator.impact(USER, 30, 10)
        assert not orchestrator.index_path.exists()

    def test_unknown_file(self, sample_project: Path):
        with pytest.raises(UnknownFileError):
            IndexOrchestrator(sample_project).impact("Sources/Nope.swift", 1, 1)

    def test_symbols(self, sample_project: Path):
        declarations = IndexOrchestrator(sample_project).symbols(USER)
        assert [(d.name, d.start_line) for d in declarations] == [
            ("User", 3),
            ("id", 4),
            ("name", 5),
            ("email", 6),
            ("init", 8),
            ("Role", 15),
            ("admin", 16),
            ("member", 16),
            ("guest", 17),
        ]

    def test_symbols_top_level(self, sample_project: Path):
        declarations = IndexOrchestrator(sample_project).symbols(USER, top_level_only=True)
        assert [d.name for d in declarations] == ["User", "Role"]

    def test_symbols_unknown_file(self, sample_project: Path):
        with pytest.raises(UnknownFileError):
            IndexOrchestrator(sample_project).symbols("Nope.swift")

    def test_conformances(self, sample_project: Path):
        edges = IndexOrchestrator(sample_project).conformances("Repository")

        assert [(e.subtype, e.supertype) for e in edges["supertypes"]] == [("Repository", "AnyObject")]
        assert [(e.subtype, e.supertype) for e in edges["conformers"]] == [("UserService", "Repository")]


class TestStatus:
    """Tests for IndexOrchestrator.status."""

    def test_status_without_index(self, sample_project: Path):
        info = IndexOrchestrator(sample_project).status()
        assert info["exists"] is False
        assert not IndexStore.default_path(sample_project).exists()

    def test_status_after_index(self, sample_project: Path):
        orchestrator = IndexOrchestrator(sample_project)
        orchestrator.index()

        info = orchestrator.status()

        assert info["exists"] is True
        assert info["stale"] is False
        assert info["files"] == 5
        assert info["symbols"] == 27
        assert info["indexed_at"]


class TestRelativePath:
    """Paths given on the command line map onto index keys."""

    def test_project_relative(self, sample_project: Path):
        assert IndexOrchestrator(sample_project).relative_path(USER) == USER

    def test_absolute(self, sample_project: Path):
        absolute = str(sample_project / "Sources" / "Models" / "User.swift")
        assert IndexOrchestrator(sample_project).relative_path(absolute) == USER

    def test_normalised(self, sample_project: Path):
        assert IndexOrchestrator(sample_project).relative_path("./Sources/App/../Models/User.swift") == USER

    def test_cwd_relative(self, sample_project: Path, monkeypatch):
        monkeypatch.chdir(sample_project / "Sources")
        assert IndexOrchestrator(sample_project).relative_path("Models/User.swift") == USER

    def test_outside_root_is_left_absolute(self, sample_project: Path, temp_dir: Path):
        outside = temp_dir / "Other.swift"
        outside.write_text("", encoding="utf-8")
        assert IndexOrchestrator(sample_project).relative_path(str(outside)) == outside.resolve().as_posix()
