"""Tests for the artifact fetcher."""
from unittest.mock import patch, MagicMock

import pytest
import requests

from model.coordinates import Coordinate
from model.errors import UnresolvableArtifact
from registry.fetcher import ArtifactFetcher, ArtifactNotFound, ArtifactTransferError
from registry.layout import InvalidPathSegment, default_path
from registry.repositories import RepositoryEndpoint

POM = b"<project><artifactId>lib</artifactId></project>"
COORDINATE = Coordinate("org.example", "lib", "1.0")


def _response(status_code, content=b""):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    return response


def _http(repo_id):
    return RepositoryEndpoint(repo_id, "default", f"https://{repo_id}.example.com/maven2")


class TestLocalRepository:
    """Test the local repository cache."""

    @patch('registry.fetcher.http_client.safe_get')
    def test_cache_hit_skips_remote(self, mock_safe_get, tmp_path):
        fetcher = ArtifactFetcher(tmp_path)
        cached = fetcher.cached_path(COORDINATE)
        cached.parent.mkdir(parents=True)
        cached.write_bytes(POM)

        source = fetcher.fetch(COORDINATE, [_http("central")])

        assert source.path == cached
        assert source.repository_id is None
        mock_safe_get.assert_not_called()

    def test_cached_path_uses_default_layout(self, tmp_path):
        fetcher = ArtifactFetcher(tmp_path)
        assert fetcher.cached_path(COORDINATE) == tmp_path / "org/example/lib/1.0/lib-1.0.pom"

    def test_offline_without_cache_fails(self, tmp_path):
        fetcher = ArtifactFetcher(tmp_path / "m2", offline=True)
        with pytest.raises(UnresolvableArtifact) as excinfo:
            fetcher.fetch(COORDINATE, [_http("central")])
        assert isinstance(excinfo.value.cause, ArtifactNotFound)

    def test_offline_with_cache_succeeds(self, tmp_path):
        fetcher = ArtifactFetcher(tmp_path, offline=True)
        cached = fetcher.cached_path(COORDINATE)
        cached.parent.mkdir(parents=True)
        cached.write_bytes(POM)
        assert fetcher.fetch(COORDINATE, []).path == cached


class TestFileRepositories:
    """Test file:// repositories."""

    def test_copies_into_cache(self, tmp_path, remote_repo):
        remote_repo.publish("org.example", "lib", "1.0", POM.decode())
        endpoint = RepositoryEndpoint("test", "default", remote_repo.url)
        fetcher = ArtifactFetcher(tmp_path / "m2")

        source = fetcher.fetch(COORDINATE, [endpoint])

        assert source.repository_id == "test"
        assert source.coordinate == COORDINATE
        assert source.path == fetcher.cached_path(COORDINATE)
        assert source.path.read_bytes() == POM

    def test_first_repository_with_artifact_wins(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        first = tmp_path / "first" / "org/example/lib/1.0"
        first.mkdir(parents=True)
        (first / "lib-1.0.pom").write_bytes(POM)
        repositories = [
            RepositoryEndpoint("empty", "default", empty.as_uri()),
            RepositoryEndpoint("first", "default", (tmp_path / "first").as_uri()),
        ]

        source = ArtifactFetcher(tmp_path / "m2").fetch(COORDINATE, repositories)

        assert source.repository_id == "first"

    def test_legacy_layout(self, tmp_path):
        legacy_root = tmp_path / "legacy"
        (legacy_root / "org.example" / "poms").mkdir(parents=True)
        (legacy_root / "org.example" / "poms" / "lib-1.0.pom").write_bytes(POM)
        endpoint = RepositoryEndpoint("old", "legacy", legacy_root.as_uri())

        source = ArtifactFetcher(tmp_path / "m2").fetch(COORDINATE, [endpoint])

        assert source.repository_id == "old"
        assert source.path.read_bytes() == POM


class TestRemoteRepositories:
    """Test HTTP repositories."""

    def test_no_repositories(self, tmp_path):
        with pytest.raises(UnresolvableArtifact) as excinfo:
            ArtifactFetcher(tmp_path).fetch(COORDINATE, [])
        assert excinfo.value.coordinate == COORDINATE
        assert excinfo.value.cause is None
        assert excinfo.value.failures == []
        assert "org.example:lib:pom:1.0" in str(excinfo.value)

    @patch('registry.fetcher.http_client.safe_get')
    def test_download_is_stored(self, mock_safe_get, tmp_path):
        mock_safe_get.return_value = _response(200, POM)
        fetcher = ArtifactFetcher(tmp_path, timeout=5)

        source = fetcher.fetch(COORDINATE, [_http("central")])

        assert source.path.read_bytes() == POM
        url = mock_safe_get.call_args[0][0]
        assert url == "https://central.example.com/maven2/org/example/lib/1.0/lib-1.0.pom"
        assert mock_safe_get.call_args[1]["fatal"] is False
        assert mock_safe_get.call_args[1]["timeout"] == 5

    @patch('registry.fetcher.http_client.safe_get')
    def test_each_repository_tried_once_in_order(self, mock_safe_get, tmp_path):
        mock_safe_get.side_effect = [_response(404), _response(200, POM)]

        source = ArtifactFetcher(tmp_path).fetch(COORDINATE, [_http("a"), _http("b")])

        assert source.repository_id == "b"
        assert mock_safe_get.call_count == 2
        assert "a.example.com" in mock_safe_get.call_args_list[0][0][0]
        assert "b.example.com" in mock_safe_get.call_args_list[1][0][0]

    @patch('registry.fetcher.http_client.safe_get')
    def test_all_failures_recorded_and_last_is_cause(self, mock_safe_get, tmp_path):
        mock_safe_get.side_effect = [_response(404), _response(500)]

        with pytest.raises(UnresolvableArtifact) as excinfo:
            ArtifactFetcher(tmp_path).fetch(COORDINATE, [_http("a"), _http("b")])

        error = excinfo.value
        assert [repo_id for repo_id, _ in error.failures] == ["a", "b"]
        assert isinstance(error.failures[0][1], ArtifactNotFound)
        assert isinstance(error.cause, ArtifactTransferError)
        assert error.cause is error.failures[-1][1]
        assert mock_safe_get.call_count == 2

    @patch('registry.fetcher.http_client.safe_get')
    def test_connection_errors_move_on(self, mock_safe_get, tmp_path):
        mock_safe_get.side_effect = [requests.ConnectionError("refused"), _response(200, POM)]

        source = ArtifactFetcher(tmp_path).fetch(COORDINATE, [_http("down"), _http("up")])

        assert source.repository_id == "up"

    @patch('registry.fetcher.http_client.safe_get')
    def test_unknown_layout_is_a_failure(self, mock_safe_get, tmp_path):
        endpoint = RepositoryEndpoint("odd", "p2", "https://odd.example.com")

        with pytest.raises(UnresolvableArtifact) as excinfo:
            ArtifactFetcher(tmp_path).fetch(COORDINATE, [endpoint])

        assert isinstance(excinfo.value.cause, ArtifactTransferError)
        mock_safe_get.assert_not_called()

    @patch('registry.fetcher.http_client.safe_get')
    def test_extension_argument_overrides_coordinate(self, mock_safe_get, tmp_path):
        mock_safe_get.return_value = _response(200, b"jar-bytes")

        source = ArtifactFetcher(tmp_path).fetch(COORDINATE, [_http("central")], "jar")

        assert source.path.name == "lib-1.0.jar"
        assert source.coordinate.extension == "jar"


class TestPathSegments:
    """Test that coordinates cannot escape the local repository."""

    @pytest.mark.parametrize("coordinate", [
        Coordinate("g", "../../../evil", "1"),
        Coordinate("g", "evil", ".."),
        Coordinate("..", "evil", "1"),
        Coordinate("g", "evil", "1", "pom", "x/y"),
        Coordinate("g", "ev\\il", "1"),
    ])
    def test_layout_rejects_unsafe_fields(self, coordinate):
        with pytest.raises(InvalidPathSegment):
            default_path(coordinate)

    @patch('registry.fetcher.http_client.safe_get')
    def test_traversal_is_never_written(self, mock_safe_get, tmp_path, remote_repo):
        mock_safe_get.return_value = _response(200, POM)
        local = tmp_path / "a" / "b" / "m2"
        repositories = [RepositoryEndpoint("test", "default", remote_repo.url), _http("central")]

        with pytest.raises(UnresolvableArtifact) as excinfo:
            ArtifactFetcher(local).fetch(Coordinate("g", "../../../evil", "1"), repositories)

        assert isinstance(excinfo.value.cause, InvalidPathSegment)
        assert list(tmp_path.rglob("evil-1.pom")) == []
        mock_safe_get.assert_not_called()

    def test_plain_dotted_names_are_fine(self, tmp_path):
        fetcher = ArtifactFetcher(tmp_path)
        path = fetcher.cached_path(Coordinate("org.example", "lib.core", "1.0.0"))
        assert tmp_path.resolve() in path.resolve().parents
