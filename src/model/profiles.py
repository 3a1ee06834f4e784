"""Profile activation and injection."""
from __future__ import annotations

import logging
from typing import List, Mapping

from model.pom import Profile, RawModel

logger = logging.getLogger(__name__)


def _property_matches(name: str, expected, properties: Mapping[str, str]) -> bool:
    negated = name.startswith("!")
    name = name[1:] if negated else name
    actual = properties.get(name)
    if expected is None:
        present = actual is not None
        return not present if negated else present
    if negated:
        # <name>!x</name> with a value is not a valid activation
        return False
    if expected.startswith("!"):
        return actual != expected[1:]
    return actual == expected


def is_active(profile: Profile, properties: Mapping[str, str]) -> bool:
    """Evaluate the explicit activation conditions of ``profile``.

    ``activeByDefault`` is not considered here; see :func:`active_profiles`.
    """
    activation = profile.activation
    if activation is None or activation.unsupported:
        return False
    if not activation.property_name:
        return False
    return _property_matches(activation.property_name, activation.property_value, properties)


def active_profiles(model: RawModel, properties: Mapping[str, str]) -> List[Profile]:
    """Profiles of ``model`` that apply under ``properties``.

    activeByDefault profiles only apply when nothing else in the same
    descriptor is active.
    """
    active = [profile for profile in model.profiles if is_active(profile, properties)]
    if not active:
        active = [
            profile for profile in model.profiles
            if profile.activation is not None and profile.activation.active_by_default
        ]
    if active:
        logger.debug("Active profiles for %s: %s", model.model_id, [p.id for p in active])
    return active


def inject_profiles(model: RawModel, profiles: List[Profile]) -> None:
    """Merge profile content into ``model`` in place; profile values win."""
    for profile in profiles:
        model.properties.update(profile.properties)
        for dep in profile.dependency_management:
            model.dependency_management = [
                d for d in model.dependency_management if d.management_key != dep.management_key
            ] + [dep]
        for plugin in profile.plugin_management:
            model.plugin_management = [
                p for p in model.plugin_management if p.key != plugin.key
            ] + [plugin]
        for repo in profile.repositories:
            model.repositories = [r for r in model.repositories if r["id"] != repo["id"]] + [repo]
