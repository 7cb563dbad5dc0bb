"""
Deployable components and the build targets derived from them.

The component names double as ECS container names in the task definition, so
``stacks.service_stack`` and the ``ecs-imagedefinitions.json`` artifact agree
on them. Each component is built from the directory of the same name.
"""

from dataclasses import dataclass
from pathlib import Path

from imagebuild.settings import BuildSettings


@dataclass(frozen=True)
class Component:
    """A container built from a top-level directory of the source tree."""

    name: str
    container_port: int
    repository_env_var: str


BACKEND = Component(name="backend", container_port=8080, repository_env_var="BACKEND_ECR_REPOSITORY_URL")
FRONTEND = Component(name="frontend", container_port=80, repository_env_var="FRONTEND_ECR_REPOSITORY_URL")

# Build order
COMPONENTS: tuple[Component, ...] = (BACKEND, FRONTEND)


@dataclass(frozen=True)
class BuildTarget:
    """A component bound to a source checkout and an ECR repository."""

    component: Component
    directory: Path
    repository_url: str

    @property
    def name(self) -> str:
        return self.component.name

    @property
    def exists(self) -> bool:
        """Whether the component directory is present in the checkout."""
        return self.directory.is_dir()

    def reference(self, tag: str) -> str:
        """Full image reference, e.g. ``<repository_url>:abc1234``."""
        return f"{self.repository_url}:{tag}"


def resolve_targets(settings: BuildSettings, source_dir: Path) -> list[BuildTarget]:
    """Bind every component to its directory under ``source_dir`` and its repository."""
    return [
        BuildTarget(
            component=component,
            directory=source_dir / component.name,
            repository_url=settings.repository_url(component.repository_env_var),
        )
        for component in COMPONENTS
    ]
