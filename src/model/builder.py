"""Descriptor merge engine.

Builds the effective descriptor for one descriptor file in a single pass:

1. read the raw descriptor and inject its active profiles;
2. register its repositories and resolve its parent, up to the root;
3. assemble inheritance from the root down;
4. interpolate ``${...}`` expressions;
5. import ``scope=import`` dependency management (BOMs);
6. validate, raising ModelBuildException when errors were found.
"""
from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from constants import Constants, ValidationLevels
from common.logging_utils import extra_context, is_debug_enabled, Timer
from model.coordinates import Coordinate
from model.errors import (
    InvalidRepository,
    ModelBuildException,
    ModelProblem,
    Severity,
    UnresolvableModel,
)
from model.interpolation import (
    InterpolationCycle,
    Interpolator,
    has_expression,
    legacy_aliases,
    project_properties,
)
from model.pom import ManagedDependency, ManagedPlugin, RawModel, read_model
from model.profiles import active_profiles, inject_profiles
from model.resolver import ModelResolver
from registry.fetcher import DescriptorSource
from registry.repositories import RepositoryEndpoint, aggregate_repositories, endpoint_from_declaration

logger = logging.getLogger(__name__)


@dataclass
class EffectiveDescriptor:
    """Fully merged descriptor."""

    group_id: str
    artifact_id: str
    version: str
    packaging: str = "jar"
    name: Optional[str] = None
    description: Optional[str] = None
    parent: Optional[Coordinate] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependency_management: List[ManagedDependency] = field(default_factory=list)
    plugin_management: List[ManagedPlugin] = field(default_factory=list)
    repositories: List[RepositoryEndpoint] = field(default_factory=list)
    lineage: List[str] = field(default_factory=list)
    problems: List[ModelProblem] = field(default_factory=list)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.group_id, self.artifact_id, self.version)

    @property
    def model_id(self) -> str:
        return self.coordinate.gav


@dataclass
class ModelBuildingRequest:
    """Input of one build. The whole parent chain is resolved in this request."""

    source: DescriptorSource
    model_resolver: ModelResolver
    validation_level: ValidationLevels = Constants.DEFAULT_VALIDATION_LEVEL
    system_properties: Mapping[str, str] = field(default_factory=dict)
    user_properties: Mapping[str, str] = field(default_factory=dict)


class _ProblemCollector:
    def __init__(self, level: ValidationLevels):
        self.level = level
        self.items: List[ModelProblem] = []

    def add(self, severity: Severity, message: str, source: str = "") -> None:
        self.items.append(ModelProblem(message, severity, source))

    def add_from(self, error_level: ValidationLevels, message: str, source: str = "") -> None:
        """Error when validating at ``error_level`` or stricter, warning below it."""
        if self.level == ValidationLevels.MINIMAL:
            return
        severity = Severity.ERROR if self.level.value >= error_level.value else Severity.WARNING
        self.add(severity, message, source)

    @property
    def has_errors(self) -> bool:
        return any(p.severity in (Severity.ERROR, Severity.FATAL) for p in self.items)

    @property
    def warnings(self) -> List[ModelProblem]:
        return [p for p in self.items if p.severity == Severity.WARNING]


class ModelBuilder:
    """Merges a descriptor with its parents into an EffectiveDescriptor."""

    def build(self, request: ModelBuildingRequest) -> EffectiveDescriptor:
        """Build the effective descriptor for ``request.source``.

        Raises:
            ModelBuildException: the descriptor or one of its ancestors could
                not be read, resolved, interpolated or validated.
        """
        with Timer() as timer:
            result = self._build(request, [])
        if is_debug_enabled(logger):
            logger.debug(
                "Effective model built",
                extra=extra_context(
                    event="model_built",
                    component="builder",
                    outcome="success",
                    target=result.model_id,
                    lineage_depth=len(result.lineage),
                    duration_ms=timer.duration_ms(),
                )
            )
        return result

    def _build(self, request: ModelBuildingRequest, import_chain: List[str]) -> EffectiveDescriptor:
        problems = _ProblemCollector(request.validation_level)
        resolver = request.model_resolver
        root_id = self._source_id(request.source)

        lineage = self._read_lineage(request, problems, root_id)
        root_id = lineage[0].model_id
        effective = self._assemble(lineage)
        effective.repositories = self._effective_repositories(lineage, request, problems)
        self._interpolate(effective, lineage[0], request, problems, root_id)
        self._import_management(effective, request, resolver, problems, import_chain + [root_id])
        self._validate_effective(effective, problems)

        for warning in problems.warnings:
            logger.warning("%s: %s", root_id, warning)
        if problems.has_errors:
            raise ModelBuildException(root_id, problems.items)
        effective.problems = problems.items
        return effective

    # -- lineage ------------------------------------------------------------

    @staticmethod
    def _source_id(source: DescriptorSource) -> str:
        return source.coordinate.gav if source.coordinate else source.location

    def _read(self, source: DescriptorSource, problems: _ProblemCollector, root_id: str) -> RawModel:
        try:
            return read_model(source.path)
        except (ET.ParseError, ValueError, OSError) as exc:
            problems.add(Severity.FATAL, f"Non-parseable descriptor {source.location}: {exc}", source.location)
            raise ModelBuildException(root_id, problems.items) from exc

    def _read_lineage(
        self,
        request: ModelBuildingRequest,
        problems: _ProblemCollector,
        root_id: str,
    ) -> List[RawModel]:
        """Read the descriptor and all its ancestors, child first."""
        activation_properties = {**request.system_properties, **request.user_properties}
        lineage: List[RawModel] = []
        seen: List[str] = []
        source = request.source

        while True:
            model = self._read(source, problems, root_id)
            self._validate_raw(model, problems)
            inject_profiles(model, active_profiles(model, activation_properties))

            if model.model_id in seen:
                problems.add(
                    Severity.FATAL,
                    "The parents form a cycle: " + " -> ".join(seen + [model.model_id]),
                    model.source,
                )
                raise ModelBuildException(root_id, problems.items)
            seen.append(model.model_id)
            lineage.append(model)

            self._configure_resolver(request.model_resolver, model, request, problems)
            if model.parent is None:
                return lineage
            source = self._resolve_parent(model, source, request.model_resolver, problems, root_id)

    def _configure_resolver(
        self,
        resolver: ModelResolver,
        model: RawModel,
        request: ModelBuildingRequest,
        problems: _ProblemCollector,
    ) -> None:
        """Make the descriptor's own repositories available for its parent."""
        interpolator = self._raw_interpolator(model, request)
        for declaration in model.repositories:
            try:
                resolver.add_repository(self._interpolated_declaration(declaration, interpolator))
            except InvalidRepository as exc:
                problems.add(Severity.ERROR, f"Invalid repository: {exc}", model.source)
            except InterpolationCycle as exc:
                problems.add(Severity.ERROR, str(exc), model.source)

    def _resolve_parent(
        self,
        model: RawModel,
        source: DescriptorSource,
        resolver: ModelResolver,
        problems: _ProblemCollector,
        root_id: str,
    ) -> DescriptorSource:
        ref = model.parent
        assert ref is not None
        missing = [name for name, value in (
            ("groupId", ref.group_id), ("artifactId", ref.artifact_id), ("version", ref.version)
        ) if not value]
        if missing:
            problems.add(
                Severity.FATAL,
                f"'parent.{missing[0]}' is missing for {model.model_id}",
                model.source,
            )
            raise ModelBuildException(root_id, problems.items)

        if not source.in_repository and ref.relative_path:
            local = self._relative_parent(model, source)
            if local is not None:
                return local

        try:
            return resolver.resolve_model(ref.group_id, ref.artifact_id, ref.version)
        except UnresolvableModel as exc:
            problems.add(
                Severity.FATAL,
                f"Non-resolvable parent POM {ref.gav} for {model.model_id}: {exc}",
                model.source,
            )
            raise ModelBuildException(root_id, problems.items) from exc

    @staticmethod
    def _relative_parent(model: RawModel, source: DescriptorSource) -> Optional[DescriptorSource]:
        """Parent found through ``relativePath`` next to a project file, if it matches."""
        ref = model.parent
        candidate = source.path.parent / ref.relative_path
        if candidate.is_dir():
            candidate = candidate / Constants.PROJECT_FILE
        if not candidate.is_file():
            return None
        try:
            parent = read_model(candidate)
        except (ET.ParseError, ValueError, OSError):
            return None
        if (parent.effective_group_id, parent.artifact_id, parent.effective_version) != (
            ref.group_id, ref.artifact_id, ref.version
        ):
            logger.debug("Ignoring non-matching parent at relative path %s", candidate)
            return None
        return DescriptorSource.for_project_file(candidate)

    # -- inheritance --------------------------------------------------------

    @staticmethod
    def _assemble(lineage: Sequence[RawModel]) -> EffectiveDescriptor:
        """Merge root-first so that descendants override ancestors."""
        child = lineage[0]
        properties: Dict[str, str] = {}
        dependencies: Dict[str, ManagedDependency] = {}
        plugins: Dict[str, ManagedPlugin] = {}
        description = None

        for raw in reversed(lineage):
            properties.update(raw.properties)
            for dep in raw.dependency_management:
                dependencies.pop(dep.management_key, None)
                dependencies[dep.management_key] = copy.copy(dep)
            for plugin in raw.plugin_management:
                plugins.pop(plugin.key, None)
                plugins[plugin.key] = copy.copy(plugin)
            if raw.description:
                description = raw.description

        parent = None
        if child.parent is not None:
            parent = Coordinate(child.parent.group_id, child.parent.artifact_id, child.parent.version)
        return EffectiveDescriptor(
            group_id=child.effective_group_id or "",
            artifact_id=child.artifact_id or "",
            version=child.effective_version or "",
            packaging=child.packaging,
            name=child.name,
            description=description,
            parent=parent,
            properties=properties,
            dependency_management=list(dependencies.values()),
            plugin_management=list(plugins.values()),
            lineage=[raw.model_id for raw in lineage],
        )

    def _effective_repositories(
        self,
        lineage: Sequence[RawModel],
        request: ModelBuildingRequest,
        problems: _ProblemCollector,
    ) -> List[RepositoryEndpoint]:
        endpoints: tuple = ()
        for raw in lineage:
            interpolator = self._raw_interpolator(raw, request)
            for declaration in raw.repositories:
                try:
                    endpoint = endpoint_from_declaration(
                        self._interpolated_declaration(declaration, interpolator)
                    )
                except (InvalidRepository, InterpolationCycle):
                    # reported while configuring the resolver
                    continue
                endpoints = aggregate_repositories(endpoints, [endpoint])
        return list(endpoints)

    # -- interpolation ------------------------------------------------------

    @staticmethod
    def _raw_interpolator(model: RawModel, request: ModelBuildingRequest) -> Interpolator:
        builtins = project_properties(
            model.effective_group_id, model.artifact_id, model.effective_version,
            packaging=model.packaging,
        )
        return Interpolator(
            builtins, request.user_properties, model.properties,
            request.system_properties, legacy_aliases(builtins),
        )

    @staticmethod
    def _interpolated_declaration(declaration: Mapping[str, str], interpolator: Interpolator) -> Dict[str, str]:
        return {key: interpolator.interpolate(value) for key, value in declaration.items()}

    def _interpolate(
        self,
        effective: EffectiveDescriptor,
        child: RawModel,
        request: ModelBuildingRequest,
        problems: _ProblemCollector,
        root_id: str,
    ) -> None:
        parent = effective.parent
        builtins = project_properties(
            effective.group_id, effective.artifact_id, effective.version,
            packaging=effective.packaging,
            name=effective.name,
            description=effective.description,
            parent_group_id=parent.group_id if parent else None,
            parent_artifact_id=parent.artifact_id if parent else None,
            parent_version=parent.version if parent else None,
        )
        interpolator = Interpolator(
            builtins, request.user_properties, effective.properties,
            request.system_properties, legacy_aliases(builtins),
        )
        value = interpolator.interpolate
        try:
            effective.properties = {key: value(raw) for key, raw in effective.properties.items()}
            effective.group_id = value(effective.group_id)
            effective.artifact_id = value(effective.artifact_id)
            effective.version = value(effective.version)
            effective.name = value(effective.name)
            effective.description = value(effective.description)
            if parent is not None:
                effective.parent = Coordinate(value(parent.group_id), value(parent.artifact_id), value(parent.version))

            dependencies: Dict[str, ManagedDependency] = {}
            for dep in effective.dependency_management:
                dep.group_id = value(dep.group_id)
                dep.artifact_id = value(dep.artifact_id)
                dep.version = value(dep.version)
                dep.type = value(dep.type)
                dep.classifier = value(dep.classifier)
                dep.scope = value(dep.scope)
                dependencies.pop(dep.management_key, None)
                dependencies[dep.management_key] = dep
            effective.dependency_management = list(dependencies.values())

            plugins: Dict[str, ManagedPlugin] = {}
            for plugin in effective.plugin_management:
                plugin.group_id = value(plugin.group_id)
                plugin.artifact_id = value(plugin.artifact_id)
                plugin.version = value(plugin.version)
                plugins.pop(plugin.key, None)
                plugins[plugin.key] = plugin
            effective.plugin_management = list(plugins.values())
        except InterpolationCycle as exc:
            problems.add(Severity.FATAL, str(exc), child.source)
            raise ModelBuildException(root_id, problems.items) from exc

    # -- dependency management import ---------------------------------------

    def _import_management(
        self,
        effective: EffectiveDescriptor,
        request: ModelBuildingRequest,
        resolver: ModelResolver,
        problems: _ProblemCollector,
        import_chain: List[str],
    ) -> None:
        imports = [dep for dep in effective.dependency_management if dep.is_import]
        if not imports:
            return
        managed = [dep for dep in effective.dependency_management if not dep.is_import]
        known = {dep.management_key for dep in managed}

        for dep in imports:
            if not (dep.group_id and dep.artifact_id and dep.version) or has_expression(dep.version):
                problems.add(
                    Severity.ERROR,
                    f"'dependencyManagement.dependencies.dependency.version' for import {dep.key} "
                    f"is missing or unresolved: {dep.version}",
                    effective.model_id,
                )
                continue
            import_id = f"{dep.group_id}:{dep.artifact_id}:{dep.version}"
            if import_id in import_chain:
                problems.add(
                    Severity.ERROR,
                    "The dependencies of type=pom and scope=import form a cycle: "
                    + " -> ".join(import_chain + [import_id]),
                    effective.model_id,
                )
                continue

            import_resolver = resolver.derive_independent_copy()
            try:
                source = import_resolver.resolve_model(dep.group_id, dep.artifact_id, dep.version)
                imported = self._build(
                    ModelBuildingRequest(
                        source=source,
                        model_resolver=import_resolver,
                        validation_level=request.validation_level,
                        system_properties=request.system_properties,
                        user_properties=request.user_properties,
                    ),
                    import_chain,
                )
            except UnresolvableModel as exc:
                problems.add(Severity.ERROR, f"Non-resolvable import POM {import_id}: {exc}", effective.model_id)
                continue
            except ModelBuildException as exc:
                problems.items.extend(exc.problems)
                problems.add(Severity.ERROR, f"Failed to build import POM {import_id}", effective.model_id)
                continue

            logger.debug("Importing dependency management of %s into %s", import_id, effective.model_id)
            for entry in imported.dependency_management:
                if entry.management_key in known:
                    continue
                known.add(entry.management_key)
                managed.append(entry)

        effective.dependency_management = managed

    # -- validation ---------------------------------------------------------

    @staticmethod
    def _validate_raw(model: RawModel, problems: _ProblemCollector) -> None:
        if not model.artifact_id:
            problems.add(Severity.ERROR, "'artifactId' is missing", model.source)
        if not model.model_version:
            problems.add_from(ValidationLevels.MAVEN_3_1, "'modelVersion' is missing", model.source)
        elif model.model_version != "4.0.0":
            problems.add_from(
                ValidationLevels.MAVEN_2_0,
                f"'modelVersion' must be 4.0.0 but is '{model.model_version}'",
                model.source,
            )

        seen = set()
        for dep in model.dependency_management:
            if dep.management_key in seen:
                problems.add_from(
                    ValidationLevels.MAVEN_3_1,
                    "'dependencyManagement.dependencies.dependency.(groupId:artifactId:type:classifier)' "
                    f"must be unique: {dep.management_key}",
                    model.source,
                )
            seen.add(dep.management_key)
        seen = set()
        for plugin in model.plugin_management:
            if plugin.key in seen:
                problems.add_from(
                    ValidationLevels.MAVEN_3_1,
                    f"'build.pluginManagement.plugins.plugin.(groupId:artifactId)' must be unique: {plugin.key}",
                    model.source,
                )
            seen.add(plugin.key)

    @staticmethod
    def _validate_effective(effective: EffectiveDescriptor, problems: _ProblemCollector) -> None:
        source = effective.model_id
        for name, value in (("groupId", effective.group_id), ("version", effective.version)):
            if not value:
                problems.add(Severity.ERROR, f"'{name}' is missing", source)

        for dep in effective.dependency_management:
            prefix = "dependencyManagement.dependencies.dependency"
            if not dep.group_id or not dep.artifact_id:
                problems.add(Severity.ERROR, f"'{prefix}.groupId/artifactId' is missing for {dep.key}", source)
                continue
            if not dep.version:
                problems.add_from(
                    ValidationLevels.MAVEN_2_0, f"'{prefix}.version' for {dep.management_key} is missing", source
                )
            elif has_expression(dep.version):
                problems.add_from(
                    ValidationLevels.MAVEN_3_0,
                    f"'{prefix}.version' for {dep.management_key} must be a valid version "
                    f"but is '{dep.version}'",
                    source,
                )

        for plugin in effective.plugin_management:
            if not plugin.artifact_id:
                problems.add(
                    Severity.ERROR, "'build.pluginManagement.plugins.plugin.artifactId' is missing", source
                )
            elif has_expression(plugin.version):
                problems.add_from(
                    ValidationLevels.STRICT,
                    f"'build.pluginManagement.plugins.plugin.version' for {plugin.key} "
                    f"must be a valid version but is '{plugin.version}'",
                    source,
                )
