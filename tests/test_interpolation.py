"""Tests for ${...} interpolation."""
import pytest

from model.interpolation import (
    InterpolationCycle,
    Interpolator,
    environment_properties,
    has_expression,
    legacy_aliases,
    project_properties,
)


def test_first_source_wins():
    interpolator = Interpolator({"v": "user"}, {"v": "model", "other": "x"})
    assert interpolator.interpolate("${v}-${other}") == "user-x"


def test_values_are_resolved_recursively():
    interpolator = Interpolator({"a": "${b}.0", "b": "${c}", "c": "4"})
    assert interpolator.lookup("a") == "4.0"


def test_unknown_expressions_are_left_verbatim():
    interpolator = Interpolator({"known": "1"})
    assert interpolator.interpolate("${known}/${unknown}") == "1/${unknown}"


def test_plain_values_untouched():
    interpolator = Interpolator({"a": "1"})
    assert interpolator.interpolate("1.0") == "1.0"
    assert interpolator.interpolate(None) is None


def test_cycle_is_detected():
    interpolator = Interpolator({"a": "${b}", "b": "${a}"})
    with pytest.raises(InterpolationCycle) as excinfo:
        interpolator.interpolate("${a}")
    assert excinfo.value.chain == ["a", "b", "a"]


def test_empty_sources_are_ignored():
    interpolator = Interpolator({}, None, {"a": "1"})
    assert interpolator.lookup("a") == "1"


def test_project_properties_and_aliases():
    builtins = project_properties("org.example", "lib", "2.0", parent_version="1")
    assert builtins["project.version"] == "2.0"
    assert builtins["pom.groupId"] == "org.example"
    assert builtins["project.parent.version"] == "1"
    assert "project.name" not in builtins

    aliases = legacy_aliases(builtins)
    assert aliases == {"groupId": "org.example", "artifactId": "lib", "version": "2.0"}


def test_model_property_beats_legacy_alias():
    builtins = project_properties("org.example", "lib", "2.0")
    interpolator = Interpolator(builtins, {"version": "from-model"}, legacy_aliases(builtins))
    assert interpolator.interpolate("${version}") == "from-model"
    assert interpolator.interpolate("${project.version}") == "2.0"


def test_environment_properties():
    assert environment_properties({"HOME": "/home/u"}) == {"env.HOME": "/home/u"}


def test_has_expression():
    assert has_expression("${x}")
    assert has_expression("1.${minor}")
    assert not has_expression("1.0")
    assert not has_expression(None)
