"""Error taxonomy for descriptor resolution.

Every failure in the resolution core surfaces as a ResolutionError subclass
with the underlying cause chained. Nothing here retries or recovers; callers
decide what to do (the CLI maps them onto exit codes).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from model.coordinates import Coordinate


class ResolutionError(Exception):
    """Base class for all resolution failures."""


class MalformedCoordinate(ResolutionError, ValueError):
    """Coordinate text does not split into groupId:artifactId:version."""

    def __init__(self, text: str, reason: str = "expected groupId:artifactId:version"):
        super().__init__(f"Malformed coordinate '{text}': {reason}")
        self.text = text
        self.reason = reason


class UnresolvableArtifact(ResolutionError):
    """No repository yielded the requested file.

    ``cause`` is the failure of the last repository tried; ``failures`` keeps
    one (repository id, error) pair per repository in the order they were tried.
    """

    def __init__(
        self,
        coordinate: "Coordinate",
        extension: str,
        cause: Optional[BaseException] = None,
        failures: Optional[Sequence[tuple]] = None,
    ):
        detail = f": {cause}" if cause is not None else ": no repositories available"
        super().__init__(f"Could not resolve {coordinate} ({extension}){detail}")
        self.coordinate = coordinate
        self.extension = extension
        self.cause = cause
        self.failures = list(failures or [])


class UnresolvableModel(ResolutionError):
    """A descriptor requested by the merge engine could not be fetched."""

    def __init__(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Could not resolve descriptor {group_id}:{artifact_id}:{version}"
            + (f": {cause}" if cause is not None else "")
        )
        self.group_id = group_id
        self.artifact_id = artifact_id
        self.version = version
        self.cause = cause


class InvalidRepository(ResolutionError, ValueError):
    """An inline repository declaration lacks an id or url."""

    def __init__(self, message: str, declaration: object = None):
        super().__init__(message)
        self.declaration = declaration


class NotInitialized(ResolutionError, RuntimeError):
    """The process-wide builder was used before init()."""

    def __init__(self) -> None:
        super().__init__("EffectiveModelBuilder has not been initialized; call init() first")


class Severity(Enum):
    """Severity of a problem found while building a model."""

    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


@dataclass
class ModelProblem:
    """A single problem reported by the merge engine."""

    message: str
    severity: Severity
    source: str = ""

    def __str__(self) -> str:
        where = f" @ {self.source}" if self.source else ""
        return f"[{self.severity.value}] {self.message}{where}"


class ModelBuildException(ResolutionError):
    """The merge engine could not produce an effective descriptor."""

    def __init__(self, model_id: str, problems: List[ModelProblem]):
        self.model_id = model_id
        self.problems = list(problems)
        lines = "\n".join(f"  {problem}" for problem in self.problems)
        count = len(self.problems)
        super().__init__(
            f"{count} problem{'s' if count != 1 else ''} encountered while building "
            f"the effective model for {model_id}\n{lines}"
        )
