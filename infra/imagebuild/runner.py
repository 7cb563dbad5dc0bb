"""
Build runner - the phases of the CodeBuild build.

- pre_build: ECR login and image tag resolution
- build: build and tag every component whose directory exists
- post_build: push built images and write the deployment artifacts

Components whose directory is missing from the checkout are skipped rather
than failing the build, so the same pipeline serves repositories that carry
only one of the two applications. A push run with no component at all fails.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import docker
from docker.errors import DockerException

from imagebuild import images, registry
from imagebuild.artifacts import ArtifactPaths, image_uri_document, write_artifacts
from imagebuild.components import BuildTarget, resolve_targets
from imagebuild.exceptions import ConfigurationError
from imagebuild.logging import bind_contextvars, get_logger
from imagebuild.settings import BuildSettings

logger = get_logger(__name__)


@dataclass
class BuildPlan:
    """What a run would do, computed without Docker or AWS access."""

    image_tag: str
    build: list[str]
    skip: list[str]
    image_uris: dict[str, dict[str, str]]


@dataclass
class BuildResult:
    image_tag: str
    built: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    pushed: list[str] = field(default_factory=list)
    artifacts: ArtifactPaths | None = None


class BuildRunner:
    """
    Runs the three build phases for the configured components.

    Usage:
        runner = BuildRunner(BuildSettings(), source_dir=Path("."), output_dir=Path("."))
        result = runner.run()
    """

    def __init__(
        self,
        settings: BuildSettings,
        *,
        source_dir: Path,
        output_dir: Path,
        login: bool = True,
        push: bool = True,
        docker_client_factory: Callable[[], Any] = docker.from_env,
    ) -> None:
        self.settings = settings
        self.source_dir = source_dir
        self.output_dir = output_dir
        self.login = login
        self.push = push
        self._docker_client_factory = docker_client_factory
        self._docker_client: Any = None

        self.image_tag = settings.image_tag
        self.targets: list[BuildTarget] = resolve_targets(settings, source_dir)

    @property
    def docker_client(self) -> Any:
        """Docker client, created on first use."""
        if self._docker_client is None:
            try:
                self._docker_client = self._docker_client_factory()
            except DockerException as e:
                raise ConfigurationError(f"Docker daemon is not reachable: {e}") from e
        return self._docker_client

    def close(self) -> None:
        if self._docker_client is not None:
            self._docker_client.close()
            self._docker_client = None

    def plan(self) -> BuildPlan:
        return BuildPlan(
            image_tag=self.image_tag,
            build=[t.name for t in self.targets if t.exists],
            skip=[t.name for t in self.targets if not t.exists],
            image_uris=image_uri_document(self.targets, self.image_tag),
        )

    def pre_build(self) -> None:
        bind_contextvars(image_tag=self.image_tag)
        logger.info(
            "pre_build_started",
            source_dir=str(self.source_dir),
            source_version=self.settings.CODEBUILD_RESOLVED_SOURCE_VERSION or None,
        )

        if not self.login:
            logger.info("ecr_login_skipped")
            return

        credentials = registry.get_registry_credentials(self.settings.AWS_REGION)
        registry.login(self.docker_client, credentials)

    def build(self) -> tuple[list[BuildTarget], list[BuildTarget]]:
        """
        Build every present component. Returns (built, skipped).

        Raises:
            ConfigurationError: If pushing is enabled and no component was found
        """
        built: list[BuildTarget] = []
        skipped: list[BuildTarget] = []

        for target in self.targets:
            if not target.exists:
                logger.warning(
                    "component_directory_not_found",
                    component=target.name,
                    directory=str(target.directory),
                )
                skipped.append(target)
                continue

            images.build_image(self.docker_client, target, self.image_tag)
            built.append(target)

        if not built and self.push:
            # The ECS deploy action rejects an empty image definitions file
            raise ConfigurationError(
                f"No component directory found under {self.source_dir}; nothing to build or deploy"
            )

        return built, skipped

    def post_build(self, built: list[BuildTarget]) -> tuple[list[str], ArtifactPaths]:
        """Push built images (both tags) and write the artifacts. Returns (pushed, artifacts)."""
        pushed: list[str] = []

        if self.push:
            for target in built:
                pushed.append(images.push_image(self.docker_client, target.repository_url, self.image_tag))
                if self.image_tag != images.LATEST_TAG:
                    pushed.append(
                        images.push_image(self.docker_client, target.repository_url, images.LATEST_TAG)
                    )
        else:
            logger.info("image_push_skipped", components=[t.name for t in built])

        artifacts = write_artifacts(
            self.output_dir,
            self.targets,
            self.image_tag,
            built={t.name for t in built},
        )
        return pushed, artifacts

    def run(self) -> BuildResult:
        """Run all phases. The Docker client is closed afterwards."""
        try:
            self.pre_build()
            built, skipped = self.build()
            pushed, artifacts = self.post_build(built)
        finally:
            self.close()

        result = BuildResult(
            image_tag=self.image_tag,
            built=[t.name for t in built],
            skipped=[t.name for t in skipped],
            pushed=pushed,
            artifacts=artifacts,
        )
        logger.info(
            "build_completed",
            built=result.built,
            skipped=result.skipped,
            pushed_count=len(result.pushed),
        )
        return result
