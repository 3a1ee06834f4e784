"""Effective model builder service.

Entry point of the resolution core: fetches a descriptor by coordinate, builds
its effective model and extracts version override tables from it.

Construct :class:`EffectiveModelBuilder` directly and pass it around. Hosts
that need a process-wide instance can use :func:`init` and
:func:`get_instance` instead.
"""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from constants import Constants, ValidationLevels, default_local_repository
from model.builder import EffectiveDescriptor, ModelBuilder, ModelBuildingRequest
from model.coordinates import parse_coordinate
from model.errors import NotInitialized
from model.interpolation import environment_properties
from model.overrides import VersionOverrideMap, extract_dependency_overrides, extract_plugin_overrides
from model.resolver import ModelResolver
from registry.fetcher import ArtifactFetcher, DescriptorSource
from registry.repositories import RepositoryEndpoint, RepositoryRegistry, endpoint_from_declaration

logger = logging.getLogger(__name__)


@dataclass
class BuilderConfig:
    """Initialization-time configuration of the builder."""

    repositories: List[Any] = field(default_factory=list)
    local_repository: Path = field(default_factory=default_local_repository)
    offline: bool = False
    timeout: Optional[float] = None
    validation_level: ValidationLevels = Constants.DEFAULT_VALIDATION_LEVEL
    user_properties: Dict[str, str] = field(default_factory=dict)
    system_properties: Dict[str, str] = field(default_factory=dict)
    include_environment: bool = True


class EffectiveModelBuilder:
    """Resolves remote descriptors into effective models and override tables."""

    def __init__(
        self,
        config: Optional[BuilderConfig] = None,
        *,
        fetcher: Optional[ArtifactFetcher] = None,
        model_builder: Optional[ModelBuilder] = None,
    ):
        self.config = config or BuilderConfig()
        self.fetcher = fetcher or ArtifactFetcher(
            self.config.local_repository,
            offline=self.config.offline,
            timeout=self.config.timeout,
        )
        self.model_builder = model_builder or ModelBuilder()
        self.registry = RepositoryRegistry.from_configuration(self.config.repositories)
        self.system_properties: Dict[str, str] = {}
        if self.config.include_environment:
            self.system_properties.update(environment_properties())
        self.system_properties.update(self.config.system_properties)

    @property
    def repositories(self) -> Tuple[RepositoryEndpoint, ...]:
        return self.registry.snapshot()

    def add_repository(self, declaration: Any) -> bool:
        """Add a repository for downloading remote descriptors."""
        return self.registry.register(endpoint_from_declaration(declaration))

    def new_model_resolver(self) -> ModelResolver:
        """Resolver for one build; its registrations stay out of this builder."""
        return ModelResolver(self.fetcher, self.registry.derive_independent_copy())

    def resolve_descriptor(self, gav: str) -> DescriptorSource:
        """Fetch the descriptor file for ``gav``.

        Raises:
            MalformedCoordinate: ``gav`` is not groupId:artifactId:version.
            UnresolvableArtifact: no repository had the descriptor.
        """
        coordinate = parse_coordinate(gav)
        logger.debug("Resolving remote POM: %s", gav)
        source = self.fetcher.fetch(coordinate, self.registry.snapshot(), Constants.DESCRIPTOR_EXTENSION)
        logger.debug("%s resolved to %s", coordinate, source.path)
        return source

    def build_effective_descriptor(
        self,
        local_file: Union[DescriptorSource, str, os.PathLike],
        model_resolver: Optional[ModelResolver] = None,
    ) -> EffectiveDescriptor:
        """Build the effective descriptor of a local descriptor file.

        A plain path is treated as a project file, so its parents may also be
        found through ``relativePath``.

        Raises:
            ModelBuildException: the merge failed.
        """
        if isinstance(local_file, DescriptorSource):
            source = local_file
        else:
            source = DescriptorSource.for_project_file(local_file)
        request = ModelBuildingRequest(
            source=source,
            model_resolver=model_resolver or self.new_model_resolver(),
            validation_level=self.config.validation_level,
            system_properties=self.system_properties,
            user_properties=self.config.user_properties,
        )
        effective = self.model_builder.build(request)
        logger.debug("Built model for project: %s", effective.name or effective.model_id)
        return effective

    def effective_descriptor(self, gav: str) -> EffectiveDescriptor:
        """Fetch ``gav`` and build its effective descriptor."""
        source = self.resolve_descriptor(gav)
        return self.build_effective_descriptor(source, self.new_model_resolver())

    def get_remote_dependency_version_overrides(self, gav: str) -> VersionOverrideMap:
        logger.debug("resolving gav: %s", gav)
        return extract_dependency_overrides(self.effective_descriptor(gav))

    def get_remote_plugin_version_overrides(self, gav: str) -> VersionOverrideMap:
        logger.debug("Resolving remote POM: %s", gav)
        return extract_plugin_overrides(self.effective_descriptor(gav))

    def get_local_dependency_version_overrides(self, path: Union[str, os.PathLike]) -> VersionOverrideMap:
        return extract_dependency_overrides(self.build_effective_descriptor(path))

    def get_local_plugin_version_overrides(self, path: Union[str, os.PathLike]) -> VersionOverrideMap:
        return extract_plugin_overrides(self.build_effective_descriptor(path))


_instance: Optional[EffectiveModelBuilder] = None
_instance_lock = threading.Lock()


def init(config: Optional[BuilderConfig] = None, **kwargs: Any) -> EffectiveModelBuilder:
    """Create the process-wide builder, replacing any previous one."""
    global _instance  # pylint: disable=global-statement
    builder = EffectiveModelBuilder(config, **kwargs)
    with _instance_lock:
        _instance = builder
    return builder


def get_instance() -> EffectiveModelBuilder:
    """Return the process-wide builder.

    Raises:
        NotInitialized: init() has not been called yet.
    """
    with _instance_lock:
        if _instance is None:
            raise NotInitialized()
        return _instance
