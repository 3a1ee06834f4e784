"""``${...}`` expression interpolation for descriptor values."""
from __future__ import annotations

import os
import re
from typing import Dict, List, Mapping, Optional

_EXPRESSION = re.compile(r"\$\{([^}]+)\}")


class InterpolationCycle(ValueError):
    """A property refers back to itself, directly or through others."""

    def __init__(self, chain: List[str]):
        super().__init__("Recursive property reference: " + " -> ".join(chain))
        self.chain = chain


def has_expression(value: Optional[str]) -> bool:
    return bool(value) and _EXPRESSION.search(value) is not None


def environment_properties(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Expose the process environment as ``env.*`` properties."""
    source = os.environ if environ is None else environ
    return {f"env.{key}": value for key, value in source.items()}


def project_properties(
    group_id: Optional[str],
    artifact_id: Optional[str],
    version: Optional[str],
    *,
    packaging: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    parent_group_id: Optional[str] = None,
    parent_artifact_id: Optional[str] = None,
    parent_version: Optional[str] = None,
) -> Dict[str, str]:
    """Built-in ``project.*`` values plus their ``pom.*`` aliases."""
    values = {
        "groupId": group_id,
        "artifactId": artifact_id,
        "version": version,
        "packaging": packaging,
        "name": name,
        "description": description,
        "parent.groupId": parent_group_id,
        "parent.artifactId": parent_artifact_id,
        "parent.version": parent_version,
    }
    props: Dict[str, str] = {}
    for key, value in values.items():
        if value is None:
            continue
        props[f"project.{key}"] = value
        props[f"pom.{key}"] = value
    return props


def legacy_aliases(builtins: Mapping[str, str]) -> Dict[str, str]:
    """Bare ``${version}``-style aliases; consulted after every other source."""
    return {
        key[len("project."):]: value
        for key, value in builtins.items()
        if key.startswith("project.") and "." not in key[len("project."):]
    }


class Interpolator:
    """Resolves expressions against an ordered list of property sources.

    The first source that defines a name wins. Values pulled from a source are
    themselves interpolated. Expressions nobody defines are left as written.
    """

    def __init__(self, *sources: Mapping[str, str]):
        self._sources = [source for source in sources if source]
        self._resolved: Dict[str, Optional[str]] = {}

    def _raw(self, name: str) -> Optional[str]:
        for source in self._sources:
            if name in source:
                return source[name]
        return None

    def lookup(self, name: str, _chain: Optional[List[str]] = None) -> Optional[str]:
        """Fully interpolated value of property ``name`` or None."""
        if name in self._resolved:
            return self._resolved[name]
        chain = list(_chain or [])
        if name in chain:
            raise InterpolationCycle(chain + [name])
        raw = self._raw(name)
        value = None if raw is None else self._evaluate(raw, chain + [name])
        self._resolved[name] = value
        return value

    def interpolate(self, value: Optional[str]) -> Optional[str]:
        """Replace every resolvable ``${name}`` in ``value``."""
        if not value or "${" not in value:
            return value
        return self._evaluate(value, [])

    def _evaluate(self, expression: str, chain: List[str]) -> str:
        def replace(match: "re.Match[str]") -> str:
            replacement = self.lookup(match.group(1).strip(), chain)
            return match.group(0) if replacement is None else replacement

        return _EXPRESSION.sub(replace, expression)
