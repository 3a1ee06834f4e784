"""Artifact fetcher: resolves a coordinate to a local file.

The local repository cache is consulted first; otherwise each remote
repository is tried once, in priority order, and the first success is stored
in the cache and returned.
"""
from __future__ import annotations

import logging
import os
import tempfile
import urllib.parse
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import requests

from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from model.coordinates import Coordinate
from model.errors import UnresolvableArtifact
from registry.layout import InvalidPathSegment, artifact_path, default_path
from registry.repositories import RepositoryEndpoint

logger = logging.getLogger(__name__)


class FetchFailure(Exception):
    """A single repository did not deliver the artifact."""

    def __init__(self, repository_id: str, message: str):
        super().__init__(f"{repository_id}: {message}")
        self.repository_id = repository_id


class ArtifactNotFound(FetchFailure):
    """The repository answered but does not have the artifact."""


class ArtifactTransferError(FetchFailure):
    """The repository could not be queried (bad status, unsupported layout, I/O)."""


@dataclass(frozen=True)
class DescriptorSource:
    """Local handle to a fetched descriptor file."""

    path: Path
    coordinate: Optional[Coordinate] = None
    repository_id: Optional[str] = None
    in_repository: bool = True

    @classmethod
    def for_project_file(cls, path: os.PathLike) -> "DescriptorSource":
        """Source for a descriptor on disk that is not part of a repository."""
        return cls(Path(path), None, None, in_repository=False)

    @property
    def location(self) -> str:
        return str(self.path)


class ArtifactFetcher:
    """Fetches artifacts from remote repositories into a local cache."""

    def __init__(
        self,
        local_repository: os.PathLike,
        *,
        offline: bool = False,
        timeout: Optional[float] = None,
    ):
        self.local_repository = Path(local_repository)
        self.offline = offline
        self.timeout = timeout

    def cached_path(self, coordinate: Coordinate) -> Path:
        """Where ``coordinate`` lives in the local cache (it may not exist).

        Raises:
            InvalidPathSegment: the coordinate would escape the local repository.
        """
        path = self.local_repository / default_path(coordinate)
        if self.local_repository.resolve() not in path.resolve().parents:
            raise InvalidPathSegment(f"{coordinate} resolves outside {self.local_repository}")
        return path

    def fetch(
        self,
        coordinate: Coordinate,
        repositories: Sequence[RepositoryEndpoint],
        extension: Optional[str] = None,
    ) -> DescriptorSource:
        """Resolve ``coordinate`` to a local file.

        Raises:
            UnresolvableArtifact: neither the cache nor any repository had it.
        """
        if extension is not None and extension != coordinate.extension:
            coordinate = coordinate.with_extension(extension)

        try:
            cached = self.cached_path(coordinate)
        except InvalidPathSegment as exc:
            raise UnresolvableArtifact(coordinate, coordinate.extension, exc, [("local", exc)]) from exc
        if cached.is_file():
            if is_debug_enabled(logger):
                logger.debug(
                    "Local repository hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="fetcher",
                        target=str(cached),
                        coordinate=str(coordinate),
                    )
                )
            return DescriptorSource(cached, coordinate, None, True)

        failures: List[Tuple[str, BaseException]] = []
        if self.offline:
            failure = ArtifactNotFound("local", "offline mode and artifact is not cached")
            failures.append(("local", failure))
            raise UnresolvableArtifact(coordinate, coordinate.extension, failure, failures)

        for endpoint in repositories:
            try:
                path = self._fetch_from(coordinate, endpoint, cached)
            except (FetchFailure, requests.RequestException, OSError) as exc:
                failures.append((endpoint.id, exc))
                logger.debug("Failed to fetch %s from %s: %s", coordinate, endpoint.id, exc)
                continue
            return DescriptorSource(path, coordinate, endpoint.id, True)

        cause = failures[-1][1] if failures else None
        raise UnresolvableArtifact(coordinate, coordinate.extension, cause, failures)

    def _fetch_from(self, coordinate: Coordinate, endpoint: RepositoryEndpoint, target: Path) -> Path:
        relative = artifact_path(coordinate, endpoint.layout)
        if relative is None:
            raise ArtifactTransferError(endpoint.id, f"unsupported repository layout '{endpoint.layout}'")

        url = f"{endpoint.url.rstrip('/')}/{relative}"
        if urllib.parse.urlsplit(url).scheme == "file":
            return self._copy_local(endpoint, url, target)

        logger.info("Downloading from %s: %s", endpoint.id, safe_url(url))
        with Timer() as timer:
            response = http_client.safe_get(url, context=endpoint.id, fatal=False, timeout=self.timeout)
        if response.status_code == 404:
            raise ArtifactNotFound(endpoint.id, f"{safe_url(url)} was not found")
        if response.status_code != 200:
            raise ArtifactTransferError(
                endpoint.id, f"{safe_url(url)} returned HTTP {response.status_code}"
            )
        stored = self._store(target, response.content)
        if is_debug_enabled(logger):
            logger.debug(
                "Artifact downloaded",
                extra=extra_context(
                    event="download",
                    component="fetcher",
                    outcome="success",
                    repository=endpoint.id,
                    duration_ms=timer.duration_ms(),
                    target=safe_url(url),
                )
            )
        return stored

    def _copy_local(self, endpoint: RepositoryEndpoint, url: str, target: Path) -> Path:
        source = Path(urllib.request.url2pathname(urllib.parse.urlsplit(url).path))
        if not source.is_file():
            raise ArtifactNotFound(endpoint.id, f"{source} does not exist")
        return self._store(target, source.read_bytes())

    @staticmethod
    def _store(target: Path, content: bytes) -> Path:
        """Write ``content`` to ``target`` atomically."""
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".part-", suffix=target.suffix)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.replace(tmp_name, target)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return target
