"""
Tests for image build and push through the docker SDK.
"""

from unittest.mock import MagicMock

import pytest
from docker.errors import APIError, BuildError

from imagebuild.components import resolve_targets
from imagebuild.exceptions import DockerBuildError, DockerPushError
from imagebuild.images import build_image, push_image


@pytest.fixture
def backend_target(settings, source_tree):
    return resolve_targets(settings, source_tree)[0]


class TestBuildImage:
    def test_builds_from_component_directory(self, docker_client, backend_target):
        build_image(docker_client, backend_target, "abc1234")

        docker_client.images.build.assert_called_once_with(
            path=str(backend_target.directory),
            tag=f"{backend_target.repository_url}:abc1234",
            rm=True,
        )

    def test_also_tags_latest(self, docker_client, backend_target):
        image = build_image(docker_client, backend_target, "abc1234")

        image.tag.assert_called_once_with(backend_target.repository_url, tag="latest")

    def test_latest_build_is_not_retagged(self, docker_client, backend_target):
        image = build_image(docker_client, backend_target, "latest")

        image.tag.assert_not_called()

    def test_build_error_wrapped_with_log(self, backend_target):
        docker_client = MagicMock()
        docker_client.images.build.side_effect = BuildError(
            "The command '/bin/sh -c make' returned a non-zero code: 2",
            [{"stream": "Step 2/3 : RUN make\n"}, {"error": "make failed"}],
        )

        with pytest.raises(DockerBuildError) as exc_info:
            build_image(docker_client, backend_target, "abc1234")

        assert exc_info.value.component == "backend"
        assert "Step 2/3 : RUN make\n" in exc_info.value.build_log

    def test_daemon_error_wrapped(self, backend_target):
        docker_client = MagicMock()
        docker_client.images.build.side_effect = APIError("daemon unavailable")

        with pytest.raises(DockerBuildError, match="Build of backend failed"):
            build_image(docker_client, backend_target, "abc1234")

    def test_failed_latest_tag(self, docker_client, backend_target):
        image = MagicMock()
        image.tag.return_value = False
        docker_client.images.build.side_effect = lambda **kwargs: (image, iter([]))

        with pytest.raises(DockerBuildError, match="Could not tag"):
            build_image(docker_client, backend_target, "abc1234")


class TestPushImage:
    def test_push_returns_reference(self, docker_client):
        reference = push_image(docker_client, "registry.example.com/backend", "abc1234")

        assert reference == "registry.example.com/backend:abc1234"
        docker_client.images.push.assert_called_once_with(
            "registry.example.com/backend", tag="abc1234", stream=True, decode=True
        )

    def test_error_in_stream_raises(self):
        docker_client = MagicMock()
        docker_client.images.push.return_value = iter(
            [{"status": "Preparing"}, {"errorDetail": {"message": "denied: not authorized"}}]
        )

        with pytest.raises(DockerPushError) as exc_info:
            push_image(docker_client, "registry.example.com/backend", "abc1234")

        assert exc_info.value.reference == "registry.example.com/backend:abc1234"
        assert "denied: not authorized" in str(exc_info.value)

    def test_api_error_wrapped(self):
        docker_client = MagicMock()
        docker_client.images.push.side_effect = APIError("connection refused")

        with pytest.raises(DockerPushError):
            push_image(docker_client, "registry.example.com/backend", "abc1234")
