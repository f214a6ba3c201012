"""
Manifest Models

Immutable models for a decoded Gradle dependency report (project,
configurations and per-configuration dependency trees), plus the
graph entities derived from them during materialization.
"""

from dataclasses import dataclass, field

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

UNDEFINED_VERSION = "undefined"


class Dependency(BaseModel):
    """One node of a configuration's resolved dependency tree."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    module: str | None = None
    name: str
    resolvable: bool
    # Some report plugin versions emit the misspelled key
    has_conflict: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("hasConflict", "hasConfict", "has_conflict"),
    )
    already_rendered: bool = Field(
        validation_alias=AliasChoices("alreadyRendered", "already_rendered"),
    )
    children: tuple["Dependency", ...] | None = None


class Configuration(BaseModel):
    """A named dependency scope such as ``compile`` or ``runtime``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    description: str | None = None
    dependencies: tuple[Dependency, ...] | None = None


class ProjectManifest(BaseModel):
    """The decoded dependency report of one project."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    version: str | None = None
    description: str | None = None
    configurations: tuple[Configuration, ...]

    @property
    def identity(self) -> str:
        """
        Graph identity of the project: ``name:version``.
        e.g. 'app:1.0', or 'app:undefined' when the report has no version.
        """
        return f"{self.name}:{self.version or UNDEFINED_VERSION}"


Dependency.model_rebuild()


@dataclass(frozen=True)
class GraphNode:
    """A project or dependency node, identified by name only."""

    identity: str


@dataclass(frozen=True)
class GraphEdge:
    """A DependsOn edge and the configurations it was observed through."""

    source: str
    target: str
    scope: str
    configs: frozenset[str] = field(default_factory=frozenset)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.scope)
