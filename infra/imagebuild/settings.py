"""
Build tool configuration.

Values come from the CodeBuild project environment (see
``stacks.pipeline_stack``) and, for local runs, from an optional ``.env``
file in the working directory.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Number of commit hash characters used for the image tag
TAG_LENGTH = 7
FALLBACK_TAG = "latest"


class BuildSettings(BaseSettings):
    """Environment-based configuration using pydantic-settings."""

    AWS_REGION: str = ""
    CODEBUILD_RESOLVED_SOURCE_VERSION: str = ""

    # ECR repository URLs without tag, e.g. 123456789012.dkr.ecr.us-east-1.amazonaws.com/fullstack-backend
    BACKEND_ECR_REPOSITORY_URL: str
    FRONTEND_ECR_REPOSITORY_URL: str

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("BACKEND_ECR_REPOSITORY_URL", "FRONTEND_ECR_REPOSITORY_URL")
    @classmethod
    def _normalize_repository_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("repository URL must not be empty")
        return value

    @property
    def image_tag(self) -> str:
        """Short commit hash of the resolved source version, or ``latest``."""
        return self.CODEBUILD_RESOLVED_SOURCE_VERSION.strip()[:TAG_LENGTH] or FALLBACK_TAG

    def repository_url(self, env_var: str) -> str:
        """Look up a repository URL by the environment variable that carries it."""
        return getattr(self, env_var)
