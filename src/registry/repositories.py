"""Repository endpoints and the ordered, de-duplicated registry of them."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Set, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from model.errors import InvalidRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryEndpoint:
    """A named, located source of descriptor files."""

    id: str
    layout: str
    url: str

    def __str__(self) -> str:
        return f"{self.id} ({safe_url(self.url)}, {self.layout})"


def default_endpoint() -> RepositoryEndpoint:
    """The public central repository used when nothing is configured."""
    return RepositoryEndpoint(
        Constants.DEFAULT_REPOSITORY_ID,
        Constants.DEFAULT_REPOSITORY_LAYOUT,
        Constants.DEFAULT_REPOSITORY_URL,
    )


def _field(fields: Mapping[str, Any], name: str, declaration: Any) -> str:
    """Scalar field as a stripped string; YAML may hand over numbers."""
    value = fields.get(name)
    if value is None:
        return ""
    if isinstance(value, (Mapping, list, tuple, set)):
        raise InvalidRepository(f"Repository '{name}' must be a scalar value", declaration)
    return str(value).strip()


def endpoint_from_declaration(declaration: Any) -> RepositoryEndpoint:
    """Convert a repository declaration into an endpoint.

    Accepts an existing endpoint, a mapping with ``id``/``url``/``layout`` keys
    (configuration files, parsed ``<repository>`` elements), or an ``ID=URL``
    string from the command line.

    Raises:
        InvalidRepository: the declaration has no id or no url, or a field
            is not a scalar.
    """
    if isinstance(declaration, RepositoryEndpoint):
        return declaration
    if isinstance(declaration, str):
        repo_id, sep, url = declaration.partition("=")
        if not sep:
            raise InvalidRepository(
                f"Repository '{declaration}' must be given as ID=URL", declaration
            )
        fields: Mapping[str, Any] = {"id": repo_id.strip(), "url": url.strip()}
    elif isinstance(declaration, Mapping):
        fields = declaration
    else:
        raise InvalidRepository(f"Unsupported repository declaration: {declaration!r}", declaration)

    repo_id = _field(fields, "id", declaration)
    url = _field(fields, "url", declaration)
    layout = _field(fields, "layout", declaration) or Constants.DEFAULT_REPOSITORY_LAYOUT
    if not repo_id:
        raise InvalidRepository("Repository declaration is missing an id", declaration)
    if not url:
        raise InvalidRepository(f"Repository '{repo_id}' is missing a url", declaration)
    return RepositoryEndpoint(repo_id, layout, url.rstrip("/"))


def aggregate_repositories(
    dominant: Tuple[RepositoryEndpoint, ...],
    recessive: Iterable[RepositoryEndpoint],
) -> Tuple[RepositoryEndpoint, ...]:
    """Merge ``recessive`` endpoints into ``dominant``, first one wins.

    An endpoint whose id is already present is dropped; the rest are appended in
    order. The result is a new tuple, ``dominant`` is never mutated.
    """
    known = {endpoint.id for endpoint in dominant}
    merged = list(dominant)
    for endpoint in recessive:
        if endpoint.id in known:
            continue
        known.add(endpoint.id)
        merged.append(endpoint)
    return tuple(merged)


class RepositoryRegistry:
    """Ordered repository sequence plus the set of ids this registry has seen.

    The sequence is an immutable tuple that derived copies share until one of
    them registers something, at which point that registry swaps in a new
    aggregated tuple. The id set is private to each registry.
    """

    def __init__(
        self,
        repositories: Tuple[RepositoryEndpoint, ...] = (),
        ids: Optional[Set[str]] = None,
    ):
        self._repositories: Tuple[RepositoryEndpoint, ...] = tuple(repositories)
        self._ids: Set[str] = set(ids) if ids is not None else set()

    @classmethod
    def from_configuration(cls, configured: Optional[Iterable[Any]]) -> "RepositoryRegistry":
        registry = cls()
        registry.initialize(configured)
        return registry

    def initialize(self, configured: Optional[Iterable[Any]]) -> None:
        """Register configured endpoints in order, or central when there are none."""
        endpoints = [endpoint_from_declaration(item) for item in (configured or [])]
        if not endpoints:
            endpoints = [default_endpoint()]
            logger.debug("No repositories configured; using %s", endpoints[0])
        for endpoint in endpoints:
            self.register(endpoint)

    def register(self, endpoint: RepositoryEndpoint) -> bool:
        """Add ``endpoint`` unless its id is already known.

        Returns:
            True when the registry changed, False for a duplicate id.
        """
        if endpoint.id in self._ids:
            return False
        self._ids.add(endpoint.id)
        self._repositories = aggregate_repositories(self._repositories, [endpoint])
        if is_debug_enabled(logger):
            logger.debug(
                "Registered repository",
                extra=extra_context(
                    event="repository_registered",
                    component="registry",
                    target=safe_url(endpoint.url),
                    repository=endpoint.id,
                    count=len(self._repositories),
                )
            )
        return True

    def snapshot(self) -> Tuple[RepositoryEndpoint, ...]:
        """Current repositories in priority order."""
        return self._repositories

    @property
    def ids(self) -> Set[str]:
        return set(self._ids)

    def derive_independent_copy(self) -> "RepositoryRegistry":
        """Copy sharing the current sequence but with its own id set."""
        return RepositoryRegistry(self._repositories, self._ids)

    def __contains__(self, repo_id: object) -> bool:
        return repo_id in self._ids

    def __len__(self) -> int:
        return len(self._repositories)
