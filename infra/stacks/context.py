"""
Deployment settings resolved from CDK context.

Values come from ``cdk.json`` and can be overridden per deployment:

    cdk deploy --all --context github_owner=acme --context github_repo=shop

Every stack reads the same keys through ``DeploymentContext.from_scope`` so
defaults live in one place.
"""

from dataclasses import dataclass

from constructs import Construct

from imagebuild.components import BACKEND, FRONTEND


@dataclass(frozen=True)
class DeploymentContext:
    """Typed view of the CDK context keys used by the stacks."""

    # Naming
    resource_prefix: str = "fullstack"

    # Network
    vpc_cidr: str = "10.0.0.0/16"
    max_azs: int = 1

    # Registry
    max_image_count: int = 10

    # Compute
    desired_count: int = 1
    task_cpu: int = 512
    task_memory_mib: int = 1024
    backend_port: int = BACKEND.container_port
    frontend_port: int = FRONTEND.container_port

    # Pipeline source
    github_owner: str | None = None
    github_repo: str | None = None
    github_branch: str = "main"
    connection_arn: str | None = None

    @classmethod
    def from_scope(cls, scope: Construct) -> "DeploymentContext":
        """Read context values visible from ``scope``, falling back to the defaults."""
        node = scope.node
        defaults = cls()
        values = {}

        for name in cls.__dataclass_fields__:
            value = node.try_get_context(name)
            if value is None:
                continue
            default = getattr(defaults, name)
            # --context values arrive as strings
            if isinstance(default, int) and not isinstance(value, int):
                try:
                    value = int(value)
                except (TypeError, ValueError) as e:
                    raise ValueError(f"Context value {name}={value!r} must be an integer") from e
            values[name] = value

        context = cls(**values)
        context.validate()
        return context

    def validate(self) -> None:
        if self.desired_count < 0:
            raise ValueError("desired_count must not be negative")
        if self.max_azs < 1:
            raise ValueError("max_azs must be at least 1")
        if self.max_image_count < 1:
            raise ValueError("max_image_count must be at least 1")

    def require_source(self) -> tuple[str, str]:
        """Return (owner, repo) of the GitHub source, raising if either is missing."""
        if not self.github_owner or not self.github_repo:
            raise ValueError(
                "github_owner and github_repo context values are required for the pipeline "
                "(e.g. --context github_owner=acme --context github_repo=shop)"
            )
        return self.github_owner, self.github_repo

    def repository_name(self, component: str) -> str:
        return f"{self.resource_prefix}-{component}"
