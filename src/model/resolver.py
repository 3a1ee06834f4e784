"""Model resolver: fetches descriptors on behalf of the merge engine."""
from __future__ import annotations

import logging
from typing import Any, Optional

from model.coordinates import Coordinate
from model.errors import UnresolvableArtifact, UnresolvableModel
from registry.fetcher import ArtifactFetcher, DescriptorSource
from registry.repositories import RepositoryRegistry, endpoint_from_declaration

logger = logging.getLogger(__name__)


class ModelResolver:
    """Resolves descriptor coordinates using a fetcher and a repository registry.

    Repositories declared inside descriptors are added through
    :meth:`add_repository`; :meth:`derive_independent_copy` hands the merge
    engine a resolver whose later registrations do not leak back here.
    """

    def __init__(self, fetcher: ArtifactFetcher, registry: Optional[RepositoryRegistry] = None):
        self.fetcher = fetcher
        self.registry = registry if registry is not None else RepositoryRegistry()

    def resolve_model(self, group_id: str, artifact_id: str, version: str) -> DescriptorSource:
        """Fetch the descriptor for ``group_id:artifact_id:version``.

        Raises:
            UnresolvableModel: no repository had the descriptor.
        """
        coordinate = Coordinate(group_id, artifact_id, version)
        try:
            return self.fetcher.fetch(coordinate, self.registry.snapshot())
        except UnresolvableArtifact as exc:
            raise UnresolvableModel(group_id, artifact_id, version, exc) from exc

    def add_repository(self, declaration: Any) -> bool:
        """Register a repository declared inline in a descriptor.

        Returns:
            False when a repository with the same id was already known.

        Raises:
            InvalidRepository: the declaration lacks an id or url.
        """
        endpoint = endpoint_from_declaration(declaration)
        added = self.registry.register(endpoint)
        if added:
            logger.debug("Added repository %s for descriptor resolution", endpoint)
        return added

    def derive_independent_copy(self) -> "ModelResolver":
        return ModelResolver(self.fetcher, self.registry.derive_independent_copy())

    @property
    def repositories(self):
        return self.registry.snapshot()
