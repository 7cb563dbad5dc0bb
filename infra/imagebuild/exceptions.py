"""Image build exceptions."""


class ImageBuildError(Exception):
    """Base exception for image build errors."""

    pass


class ConfigurationError(ImageBuildError):
    """Raised when the build environment is incomplete or inconsistent."""

    pass


class RegistryLoginError(ImageBuildError):
    """Raised when the Docker daemon cannot be logged in to ECR."""

    pass


class DockerBuildError(ImageBuildError):
    """Raised when building or tagging a component image fails."""

    def __init__(self, message: str, component: str, build_log: list[str] | None = None):
        super().__init__(message)
        self.component = component
        self.build_log = build_log or []


class DockerPushError(ImageBuildError):
    """Raised when pushing an image reference to the registry fails."""

    def __init__(self, message: str, reference: str):
        super().__init__(message)
        self.reference = reference
