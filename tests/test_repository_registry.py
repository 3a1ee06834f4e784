"""Tests for repository endpoints and the repository registry."""
import pytest

from constants import Constants
from model.errors import InvalidRepository
from model.service import BuilderConfig, EffectiveModelBuilder
from registry.repositories import (
    RepositoryEndpoint,
    RepositoryRegistry,
    aggregate_repositories,
    default_endpoint,
    endpoint_from_declaration,
)


def _endpoint(repo_id, url=None):
    return RepositoryEndpoint(repo_id, "default", url or f"https://{repo_id}.example.com/maven2")


class TestEndpointFromDeclaration:
    """Test conversion of repository declarations."""

    def test_id_equals_url_string(self):
        endpoint = endpoint_from_declaration("internal=https://repo.example.com/maven2/")
        assert endpoint == RepositoryEndpoint("internal", "default", "https://repo.example.com/maven2")

    def test_mapping_with_layout(self):
        endpoint = endpoint_from_declaration(
            {"id": "old", "url": "https://old.example.com/repo", "layout": "legacy"}
        )
        assert endpoint.layout == "legacy"

    def test_endpoint_passes_through(self):
        endpoint = _endpoint("a")
        assert endpoint_from_declaration(endpoint) is endpoint

    @pytest.mark.parametrize("declaration", [
        "no-separator",
        "=https://repo.example.com",
        "id=",
        {"id": "", "url": "https://repo.example.com"},
        {"id": "x"},
        {"url": "https://repo.example.com"},
        42,
        {"id": "x", "url": ["https://a", "https://b"]},
    ])
    def test_invalid_declarations(self, declaration):
        with pytest.raises(InvalidRepository):
            endpoint_from_declaration(declaration)

    def test_numeric_fields_from_yaml_are_converted(self):
        endpoint = endpoint_from_declaration({"id": 1, "url": "https://repo.example.com"})
        assert endpoint.id == "1"

    def test_numeric_fields_reach_the_builder(self, tmp_path):
        builder = EffectiveModelBuilder(BuilderConfig(
            repositories=[{"id": 1, "url": "https://repo.example.com"}],
            local_repository=tmp_path,
            include_environment=False,
        ))
        assert [r.id for r in builder.repositories] == ["1"]


class TestAggregateRepositories:
    """Test first-wins aggregation."""

    def test_first_wins_and_order_kept(self):
        a, b, c = _endpoint("a"), _endpoint("b"), _endpoint("c")
        b_other = _endpoint("b", "https://elsewhere.example.com")
        merged = aggregate_repositories((a, b), [b_other, c])
        assert merged == (a, b, c)

    def test_dominant_is_not_mutated(self):
        dominant = (_endpoint("a"),)
        merged = aggregate_repositories(dominant, [_endpoint("b")])
        assert dominant == (_endpoint("a"),)
        assert len(merged) == 2


class TestRepositoryRegistry:
    """Test the registry and its derived copies."""

    def test_defaults_to_central(self):
        registry = RepositoryRegistry.from_configuration([])
        assert registry.snapshot() == (default_endpoint(),)
        assert Constants.DEFAULT_REPOSITORY_ID in registry

    def test_configured_repositories_replace_central(self):
        registry = RepositoryRegistry.from_configuration(["a=https://a.example.com", {"id": "b", "url": "https://b"}])
        assert [endpoint.id for endpoint in registry.snapshot()] == ["a", "b"]
        assert Constants.DEFAULT_REPOSITORY_ID not in registry

    def test_register_is_idempotent_by_id(self):
        registry = RepositoryRegistry()
        assert registry.register(_endpoint("a")) is True
        before = registry.snapshot()
        assert registry.register(_endpoint("a", "https://other.example.com")) is False
        assert registry.snapshot() is before
        assert len(registry) == 1

    def test_register_appends_in_order(self):
        registry = RepositoryRegistry()
        for repo_id in ("one", "two", "three"):
            registry.register(_endpoint(repo_id))
        assert [endpoint.id for endpoint in registry.snapshot()] == ["one", "two", "three"]

    def test_snapshot_is_immutable_after_register(self):
        registry = RepositoryRegistry()
        registry.register(_endpoint("a"))
        snapshot = registry.snapshot()
        registry.register(_endpoint("b"))
        assert snapshot == (_endpoint("a"),)

    def test_derived_copy_shares_sequence_until_mutation(self):
        original = RepositoryRegistry()
        original.register(_endpoint("a"))
        copy = original.derive_independent_copy()
        assert copy.snapshot() is original.snapshot()

        copy.register(_endpoint("b"))
        assert [endpoint.id for endpoint in copy.snapshot()] == ["a", "b"]
        assert [endpoint.id for endpoint in original.snapshot()] == ["a"]

    def test_derived_copy_registrations_do_not_leak(self):
        original = RepositoryRegistry()
        original.register(_endpoint("a"))
        copy = original.derive_independent_copy()

        assert copy.register(_endpoint("new")) is True
        assert "new" not in original
        assert original.register(_endpoint("new")) is True

    def test_derived_copy_inherits_known_ids(self):
        original = RepositoryRegistry()
        original.register(_endpoint("a"))
        copy = original.derive_independent_copy()
        assert copy.register(_endpoint("a")) is False

    def test_ids_property_returns_a_copy(self):
        registry = RepositoryRegistry()
        registry.register(_endpoint("a"))
        ids = registry.ids
        ids.add("b")
        assert "b" not in registry
