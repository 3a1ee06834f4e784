"""Version override extraction from an effective descriptor."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Protocol

from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)

VersionOverrideMap = Dict[str, str]


class _ManagedEntry(Protocol):
    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]


def _extract(entries: Iterable[_ManagedEntry], section: str) -> VersionOverrideMap:
    overrides: VersionOverrideMap = {}
    for entry in entries:
        key = f"{entry.group_id}:{entry.artifact_id}"
        if entry.version is None:
            logger.debug("Skipping %s entry without a version: %s", section, key)
            continue
        overrides[key] = entry.version
        logger.debug("Added version override for: %s:%s", key, entry.version)
    if is_debug_enabled(logger):
        logger.debug(
            "Extracted version overrides",
            extra=extra_context(event="overrides_extracted", component="overrides", section=section,
                                count=len(overrides))
        )
    return overrides


def extract_dependency_overrides(effective) -> VersionOverrideMap:
    """Map ``groupId:artifactId`` to version for every dependency-management entry.

    Entries are taken in declared order; a later entry for the same key
    replaces an earlier one. A missing section yields an empty mapping.
    """
    return _extract(getattr(effective, "dependency_management", None) or [], "dependencyManagement")


def extract_plugin_overrides(effective) -> VersionOverrideMap:
    """Same as :func:`extract_dependency_overrides` for plugin management."""
    return _extract(getattr(effective, "plugin_management", None) or [], "pluginManagement")
