"""Pytest configuration and fixtures for depgraph tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest

from depgraph.graph import Index
from depgraph.indexer import GraphIndexer


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the pristine sample Swift project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_project(temp_dir: Path, sample_project_path: Path) -> Path:
    """Copy the sample project so tests can index it and modify it freely."""
    root = temp_dir / "sample_project"
    shutil.copytree(sample_project_path, root)
    return root.resolve()


@pytest.fixture
def sample_index(sample_project: Path) -> Index:
    """Index built from the sample project."""
    return GraphIndexer().build_index(sample_project)


@pytest.fixture
def make_project(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Factory writing ``{relative path: source}`` into a fresh project root."""
    counter = {"n": 0}

    def _make(files: Dict[str, str]) -> Path:
        counter["n"] += 1
        root = temp_dir / f"project{counter['n']}"
        for rel_path, source in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root.resolve()

    return _make


HELPER_SOURCE = "\n".join([
    "import Foundation",
    "",
    'let defaultName = "world"',
    "",
    "struct Greeter {",
    "    var name: String",
    "}",
    "",
    "// Formatting helpers",
    "func helper(",
    "    _ value: String",
    ") -> String {",
    "    let trimmed = value.trimmingCharacters(in: .whitespaces)",
    '    return "Hello, \\(trimmed)"',
    "}",
    "",
])

CALLER_SOURCE = "\n".join(
    ["import Foundation"]
    + [""] * 38
    + [
        "func run() {",
        '    print("starting")',
        '    let message = helper("x")',
        "    print(message)",
        "}",
        "",
    ]
)


@pytest.fixture
def helper_project(make_project) -> Path:
    """``A.swift`` defines ``helper`` on lines 10-15, ``B.swift`` calls it on line 42."""
    return make_project({"A.swift": HELPER_SOURCE, "B.swift": CALLER_SOURCE})
