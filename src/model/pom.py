"""Raw descriptor (POM) reader.

Parses a descriptor file into plain dataclasses without applying inheritance,
profiles or interpolation; the merge engine does that. Namespaces are stripped
so both namespaced and bare documents read the same way.
"""
from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constants import Constants


@dataclass
class ManagedDependency:
    """A dependencyManagement entry."""

    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]
    type: str = Constants.DEFAULT_DEPENDENCY_TYPE
    classifier: str = ""
    scope: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def management_key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.type}:{self.classifier}"

    @property
    def is_import(self) -> bool:
        return self.scope == "import" and self.type == "pom"


@dataclass
class ManagedPlugin:
    """A pluginManagement entry."""

    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]

    @property
    def key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


@dataclass
class ParentReference:
    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str]
    relative_path: str = Constants.DEFAULT_RELATIVE_PATH

    @property
    def gav(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass
class Activation:
    active_by_default: bool = False
    property_name: Optional[str] = None
    property_value: Optional[str] = None
    # jdk, os and file conditions cannot be evaluated here
    unsupported: bool = False


@dataclass
class Profile:
    id: str
    activation: Optional[Activation] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependency_management: List[ManagedDependency] = field(default_factory=list)
    plugin_management: List[ManagedPlugin] = field(default_factory=list)
    repositories: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class RawModel:
    """One descriptor exactly as written."""

    source: str
    model_version: Optional[str] = None
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    name: Optional[str] = None
    description: Optional[str] = None
    parent: Optional[ParentReference] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependency_management: List[ManagedDependency] = field(default_factory=list)
    plugin_management: List[ManagedPlugin] = field(default_factory=list)
    repositories: List[Dict[str, str]] = field(default_factory=list)
    profiles: List[Profile] = field(default_factory=list)

    @property
    def effective_group_id(self) -> Optional[str]:
        if self.group_id:
            return self.group_id
        return self.parent.group_id if self.parent else None

    @property
    def effective_version(self) -> Optional[str]:
        if self.version:
            return self.version
        return self.parent.version if self.parent else None

    @property
    def model_id(self) -> str:
        return f"{self.effective_group_id}:{self.artifact_id}:{self.effective_version}"


def _strip_ns(el: ET.Element) -> None:
    """Remove namespace prefixes from elements."""
    if isinstance(el.tag, str) and el.tag.startswith("{"):
        el.tag = el.tag[el.tag.find("}") + 1:]
    for child in el:
        _strip_ns(child)


def _text(el: Optional[ET.Element], path: str) -> Optional[str]:
    if el is None:
        return None
    node = el.find(path)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def _properties(el: Optional[ET.Element]) -> Dict[str, str]:
    if el is None:
        return {}
    return {
        child.tag: (child.text or "").strip()
        for child in el
        if isinstance(child.tag, str)
    }


def _dependency_management(container: ET.Element) -> List[ManagedDependency]:
    deps = []
    for node in container.findall("dependencyManagement/dependencies/dependency"):
        deps.append(ManagedDependency(
            group_id=_text(node, "groupId"),
            artifact_id=_text(node, "artifactId"),
            version=_text(node, "version"),
            type=_text(node, "type") or Constants.DEFAULT_DEPENDENCY_TYPE,
            classifier=_text(node, "classifier") or "",
            scope=_text(node, "scope"),
        ))
    return deps


def _plugin_management(container: ET.Element) -> List[ManagedPlugin]:
    plugins = []
    for node in container.findall("build/pluginManagement/plugins/plugin"):
        plugins.append(ManagedPlugin(
            group_id=_text(node, "groupId") or Constants.DEFAULT_PLUGIN_GROUP_ID,
            artifact_id=_text(node, "artifactId"),
            version=_text(node, "version"),
        ))
    return plugins


def _repositories(container: ET.Element) -> List[Dict[str, str]]:
    repos = []
    for node in container.findall("repositories/repository"):
        repos.append({
            "id": _text(node, "id") or "",
            "url": _text(node, "url") or "",
            "layout": _text(node, "layout") or Constants.DEFAULT_REPOSITORY_LAYOUT,
        })
    return repos


def _activation(node: Optional[ET.Element]) -> Optional[Activation]:
    if node is None:
        return None
    activation = Activation(active_by_default=_text(node, "activeByDefault") == "true")
    prop = node.find("property")
    if prop is not None:
        activation.property_name = _text(prop, "name")
        activation.property_value = _text(prop, "value")
    for tag in ("jdk", "os", "file"):
        if node.find(tag) is not None:
            activation.unsupported = True
    return activation


def _profiles(root: ET.Element) -> List[Profile]:
    profiles = []
    for node in root.findall("profiles/profile"):
        profiles.append(Profile(
            id=_text(node, "id") or "default",
            activation=_activation(node.find("activation")),
            properties=_properties(node.find("properties")),
            dependency_management=_dependency_management(node),
            plugin_management=_plugin_management(node),
            repositories=_repositories(node),
        ))
    return profiles


def _relative_path(parent_node: ET.Element) -> str:
    """Declared relativePath; an empty element disables the local lookup."""
    node = parent_node.find("relativePath")
    if node is None:
        return Constants.DEFAULT_RELATIVE_PATH
    return (node.text or "").strip()


def parse_model(root: ET.Element, source: str) -> RawModel:
    """Build a RawModel from an already parsed ``<project>`` element."""
    _strip_ns(root)
    parent = None
    parent_node = root.find("parent")
    if parent_node is not None:
        parent = ParentReference(
            group_id=_text(parent_node, "groupId"),
            artifact_id=_text(parent_node, "artifactId"),
            version=_text(parent_node, "version"),
            relative_path=_relative_path(parent_node),
        )
    return RawModel(
        source=source,
        model_version=_text(root, "modelVersion"),
        group_id=_text(root, "groupId"),
        artifact_id=_text(root, "artifactId"),
        version=_text(root, "version"),
        packaging=_text(root, "packaging") or "jar",
        name=_text(root, "name"),
        description=_text(root, "description"),
        parent=parent,
        properties=_properties(root.find("properties")),
        dependency_management=_dependency_management(root),
        plugin_management=_plugin_management(root),
        repositories=_repositories(root),
        profiles=_profiles(root),
    )


def read_model(path: os.PathLike) -> RawModel:
    """Read a descriptor file.

    Raises:
        ET.ParseError: the file is not well-formed XML.
        ValueError: the root element is not ``<project>``.
        OSError: the file cannot be read.
    """
    tree = ET.parse(os.fspath(path))
    root = tree.getroot()
    tag = root.tag.rsplit("}", 1)[-1] if isinstance(root.tag, str) else root.tag
    if tag != "project":
        raise ValueError(f"Expected <project> root element but found <{tag}>")
    return parse_model(root, os.fspath(path))
