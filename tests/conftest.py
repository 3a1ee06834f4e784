"""Shared fixtures: descriptor builders and file:// repositories."""
from __future__ import annotations

from pathlib import Path

import pytest

from model.service import BuilderConfig, EffectiveModelBuilder


def _dependency(dep) -> str:
    if isinstance(dep, dict):
        fields = dep
    else:
        group_id, artifact_id, version = dep
        fields = {"groupId": group_id, "artifactId": artifact_id, "version": version}
    body = "".join(f"<{tag}>{value}</{tag}>" for tag, value in fields.items() if value is not None)
    return f"<dependency>{body}</dependency>"


def _plugin(plugin) -> str:
    group_id, artifact_id, version = plugin
    body = ""
    if group_id:
        body += f"<groupId>{group_id}</groupId>"
    body += f"<artifactId>{artifact_id}</artifactId>"
    if version:
        body += f"<version>{version}</version>"
    return f"<plugin>{body}</plugin>"


def pom_xml(
    group_id,
    artifact_id,
    version,
    *,
    parent=None,
    relative_path=None,
    properties=None,
    managed=(),
    plugins=(),
    repositories=(),
    body="",
    model_version="4.0.0",
    namespace=True,
) -> str:
    """Render a small descriptor document."""
    parts = []
    if model_version:
        parts.append(f"<modelVersion>{model_version}</modelVersion>")
    if parent:
        p_group, p_artifact, p_version = parent
        rel = f"<relativePath>{relative_path}</relativePath>" if relative_path is not None else ""
        parts.append(
            f"<parent><groupId>{p_group}</groupId><artifactId>{p_artifact}</artifactId>"
            f"<version>{p_version}</version>{rel}</parent>"
        )
    if group_id:
        parts.append(f"<groupId>{group_id}</groupId>")
    parts.append(f"<artifactId>{artifact_id}</artifactId>")
    if version:
        parts.append(f"<version>{version}</version>")
    parts.append("<packaging>pom</packaging>")
    if properties:
        props = "".join(f"<{key}>{value}</{key}>" for key, value in properties.items())
        parts.append(f"<properties>{props}</properties>")
    if repositories:
        repos = "".join(
            f"<repository><id>{repo_id}</id><url>{url}</url></repository>" for repo_id, url in repositories
        )
        parts.append(f"<repositories>{repos}</repositories>")
    if managed:
        deps = "".join(_dependency(dep) for dep in managed)
        parts.append(f"<dependencyManagement><dependencies>{deps}</dependencies></dependencyManagement>")
    if plugins:
        entries = "".join(_plugin(plugin) for plugin in plugins)
        parts.append(f"<build><pluginManagement><plugins>{entries}</plugins></pluginManagement></build>")
    if body:
        parts.append(body)
    xmlns = ' xmlns="http://maven.apache.org/POM/4.0.0"' if namespace else ""
    inner = "\n  ".join(parts)
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<project{xmlns}>\n  {inner}\n</project>\n'


class FileRepository:
    """A default-layout repository on disk, reachable through a file:// URL."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def url(self) -> str:
        return self.root.as_uri()

    def path_for(self, group_id: str, artifact_id: str, version: str, extension: str = "pom") -> Path:
        return (
            self.root / group_id.replace(".", "/") / artifact_id / version
            / f"{artifact_id}-{version}.{extension}"
        )

    def publish(self, group_id: str, artifact_id: str, version: str, content: str) -> Path:
        path = self.path_for(group_id, artifact_id, version)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def publish_pom(self, group_id: str, artifact_id: str, version: str, **kwargs) -> Path:
        return self.publish(group_id, artifact_id, version, pom_xml(group_id, artifact_id, version, **kwargs))


@pytest.fixture
def remote_repo(tmp_path):
    return FileRepository(tmp_path / "remote")


@pytest.fixture
def local_repo(tmp_path):
    return tmp_path / "m2"


@pytest.fixture
def make_builder(remote_repo, local_repo):
    """Factory for builders that only see ``remote_repo``."""

    def factory(**overrides):
        options = {
            "repositories": [{"id": "test", "url": remote_repo.url}],
            "local_repository": local_repo,
            "include_environment": False,
        }
        options.update(overrides)
        return EffectiveModelBuilder(BuilderConfig(**options))

    return factory
