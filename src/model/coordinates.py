"""Coordinate model and parsing."""
from __future__ import annotations

from dataclasses import dataclass, replace

from constants import Constants
from model.errors import MalformedCoordinate


@dataclass(frozen=True)
class Coordinate:
    """Immutable identity of a descriptor or artifact."""

    group_id: str
    artifact_id: str
    version: str
    extension: str = Constants.DESCRIPTOR_EXTENSION
    classifier: str = ""

    @property
    def gav(self) -> str:
        """groupId:artifactId:version form."""
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def management_key(self) -> str:
        """groupId:artifactId, the key used in override tables."""
        return f"{self.group_id}:{self.artifact_id}"

    def with_extension(self, extension: str) -> "Coordinate":
        return replace(self, extension=extension)

    def __str__(self) -> str:
        classifier = f":{self.classifier}" if self.classifier else ""
        return f"{self.group_id}:{self.artifact_id}:{self.extension}{classifier}:{self.version}"


def parse_coordinate(text: str, extension: str = Constants.DESCRIPTOR_EXTENSION) -> Coordinate:
    """Parse a plain ``groupId:artifactId:version`` string.

    Fields are taken verbatim; no trimming or case folding happens.

    Raises:
        MalformedCoordinate: the text does not have exactly three non-empty fields.
    """
    if not isinstance(text, str):
        raise MalformedCoordinate(repr(text), "coordinate must be a string")
    parts = text.split(":")
    if len(parts) != 3:
        raise MalformedCoordinate(text, f"expected 3 fields but found {len(parts)}")
    if not all(parts):
        raise MalformedCoordinate(text, "fields must not be empty")
    group_id, artifact_id, version = parts
    return Coordinate(group_id, artifact_id, version, extension)
