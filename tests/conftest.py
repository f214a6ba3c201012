"""
Shared fixtures: sample dependency reports as raw JSON objects, in the
shape written by the Gradle dependency report plugin.
"""

import copy

import pytest

from src.depgraph.memory_store import InMemoryGraphStore


def dep(name: str, *children: dict, module: str | None = None, empty_children: bool = False) -> dict:
    """A dependency node; ``children`` is null unless given (or ``empty_children``)."""
    return {
        "module": module,
        "name": name,
        "resolvable": True,
        "hasConflict": False,
        "alreadyRendered": False,
        "children": list(children) if children or empty_children else None,
    }


EXAMPLE_REPORT = {
    "name": "app",
    "version": "1.0",
    "configurations": [
        {
            "name": "compile",
            "dependencies": [dep("lib-a", dep("lib-b"))],
        }
    ],
}

# lib-shared is reached from the project in two configurations and,
# inside "compile", through two parents (diamond).
DIAMOND_REPORT = {
    "name": "service",
    "version": "2.3.1",
    "description": "A service with shared dependencies",
    "configurations": [
        {
            "name": "compile",
            "description": "Compile classpath",
            "dependencies": [
                dep("lib-shared"),
                dep("lib-a", dep("lib-common")),
                dep("lib-b", dep("lib-common", dep("lib-leaf"))),
            ],
        },
        {
            "name": "runtime",
            "dependencies": [
                dep("lib-shared"),
                dep("lib-a", dep("lib-common")),
            ],
        },
        {"name": "archives", "dependencies": None},
        {"name": "testCompile", "dependencies": []},
    ],
}


@pytest.fixture
def example_report() -> dict:
    return copy.deepcopy(EXAMPLE_REPORT)


@pytest.fixture
def diamond_report() -> dict:
    return copy.deepcopy(DIAMOND_REPORT)


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()
