"""
Fixtures for the image build tool tests.

Docker and AWS are never reached: tests patch ``boto3`` and pass a
``MagicMock`` docker client through the runner's client factory.
"""

from unittest.mock import MagicMock

import pytest

from imagebuild.logging import clear_contextvars
from imagebuild.settings import BuildSettings

BACKEND_URL = "123456789012.dkr.ecr.us-east-1.amazonaws.com/fullstack-backend"
FRONTEND_URL = "123456789012.dkr.ecr.us-east-1.amazonaws.com/fullstack-frontend"
COMMIT = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture(autouse=True)
def clean_log_context():
    """Drop context variables bound by a previous run, e.g. image_tag."""
    clear_contextvars()
    yield
    clear_contextvars()


@pytest.fixture
def make_settings():
    """Factory for settings that ignore the process environment's .env file."""

    def _make(**overrides) -> BuildSettings:
        values = {
            "AWS_REGION": "us-east-1",
            "CODEBUILD_RESOLVED_SOURCE_VERSION": COMMIT,
            "BACKEND_ECR_REPOSITORY_URL": BACKEND_URL,
            "FRONTEND_ECR_REPOSITORY_URL": FRONTEND_URL,
        }
        values.update(overrides)
        return BuildSettings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def source_tree(tmp_path):
    """Checkout with both component directories."""
    for name in ("backend", "frontend"):
        component_dir = tmp_path / "src" / name
        component_dir.mkdir(parents=True)
        (component_dir / "Dockerfile").write_text("FROM scratch\n")
    return tmp_path / "src"


@pytest.fixture
def docker_client():
    """Docker client whose builds and pushes succeed."""
    client = MagicMock()
    image = MagicMock()
    image.id = "sha256:feedface"
    image.tag.return_value = True
    client.images.build.side_effect = lambda **kwargs: (image, iter([{"stream": "Step 1/1 : FROM scratch\n"}]))
    client.images.push.side_effect = lambda *args, **kwargs: iter(
        [{"status": "Pushing"}, {"status": "Pushed"}]
    )
    return client


@pytest.fixture
def clean_build_env(monkeypatch):
    """Remove build variables inherited from the process environment."""
    for name in (
        "AWS_REGION",
        "CODEBUILD_RESOLVED_SOURCE_VERSION",
        "BACKEND_ECR_REPOSITORY_URL",
        "FRONTEND_ECR_REPOSITORY_URL",
        "LOG_JSON",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
