"""Repository path layouts."""
from __future__ import annotations

from typing import Optional

from constants import RepositoryLayouts
from model.coordinates import Coordinate


class InvalidPathSegment(ValueError):
    """A coordinate field cannot be used as a repository path segment."""


def _check_segments(coordinate: Coordinate) -> None:
    for name, value in (
        ("groupId", coordinate.group_id),
        ("artifactId", coordinate.artifact_id),
        ("version", coordinate.version),
        ("extension", coordinate.extension),
        ("classifier", coordinate.classifier),
    ):
        if value in (".", "..") or "/" in value or "\\" in value:
            raise InvalidPathSegment(f"{name} '{value}' of {coordinate} is not a valid path segment")


def artifact_filename(coordinate: Coordinate) -> str:
    """File name of an artifact, e.g. ``commons-lang-2.6.pom``."""
    _check_segments(coordinate)
    classifier = f"-{coordinate.classifier}" if coordinate.classifier else ""
    return f"{coordinate.artifact_id}-{coordinate.version}{classifier}.{coordinate.extension}"


def default_path(coordinate: Coordinate) -> str:
    """Maven 2 layout: ``org/example/lib/1.0/lib-1.0.pom``."""
    group_path = coordinate.group_id.replace(".", "/")
    return (
        f"{group_path}/{coordinate.artifact_id}/{coordinate.version}/"
        f"{artifact_filename(coordinate)}"
    )


def legacy_path(coordinate: Coordinate) -> str:
    """Maven 1 layout: ``org.example/poms/lib-1.0.pom``."""
    return f"{coordinate.group_id}/{coordinate.extension}s/{artifact_filename(coordinate)}"


_LAYOUTS = {
    RepositoryLayouts.DEFAULT.value: default_path,
    RepositoryLayouts.LEGACY.value: legacy_path,
}


def artifact_path(coordinate: Coordinate, layout: str) -> Optional[str]:
    """Relative path of ``coordinate`` in a repository, or None for an unknown layout."""
    builder = _LAYOUTS.get(layout)
    if builder is None:
        return None
    return builder(coordinate)
