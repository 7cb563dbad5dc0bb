"""
Docker image build, tag and push through the docker SDK.
"""

import time
from typing import Any

from docker.errors import APIError, BuildError

from imagebuild.components import BuildTarget
from imagebuild.exceptions import DockerBuildError, DockerPushError
from imagebuild.logging import get_logger

logger = get_logger(__name__)

LATEST_TAG = "latest"


def build_image(docker_client: Any, target: BuildTarget, tag: str) -> Any:
    """
    Build a component image tagged ``<repo>:<tag>`` and ``<repo>:latest``.

    Returns the docker SDK image object.

    Raises:
        DockerBuildError: If the build or the extra tag fails
    """
    reference = target.reference(tag)
    logger.info("image_build_started", component=target.name, reference=reference)
    started = time.monotonic()

    try:
        image, build_logs = docker_client.images.build(
            path=str(target.directory),
            tag=reference,
            rm=True,
        )
    except BuildError as e:
        build_log = [chunk.get("stream", "") for chunk in e.build_log if isinstance(chunk, dict)]
        logger.error("image_build_failed", component=target.name, error=e.msg)
        raise DockerBuildError(
            f"Build of {target.name} failed: {e.msg}", component=target.name, build_log=build_log
        ) from e
    except APIError as e:
        logger.error("image_build_failed", component=target.name, error=str(e))
        raise DockerBuildError(f"Build of {target.name} failed: {e}", component=target.name) from e

    for chunk in build_logs:
        line = chunk.get("stream", "").rstrip() if isinstance(chunk, dict) else ""
        if line:
            logger.debug("image_build_output", component=target.name, line=line)

    if tag != LATEST_TAG and not image.tag(target.repository_url, tag=LATEST_TAG):
        raise DockerBuildError(
            f"Could not tag {reference} as {target.reference(LATEST_TAG)}", component=target.name
        )

    logger.info(
        "image_built",
        component=target.name,
        reference=reference,
        image_id=image.id,
        duration_ms=(time.monotonic() - started) * 1000,
    )
    return image


def push_image(docker_client: Any, repository: str, tag: str) -> str:
    """
    Push ``<repository>:<tag>`` and return the pushed reference.

    The push progress stream reports failures inline instead of raising, so
    each status line is inspected for an ``error`` entry.

    Raises:
        DockerPushError: If the daemon or the registry rejects the push
    """
    reference = f"{repository}:{tag}"
    logger.info("image_push_started", reference=reference)
    started = time.monotonic()

    try:
        for status in docker_client.images.push(repository, tag=tag, stream=True, decode=True):
            error = status.get("error") or status.get("errorDetail", {}).get("message")
            if error:
                logger.error("image_push_failed", reference=reference, error=error)
                raise DockerPushError(f"Push of {reference} failed: {error}", reference=reference)
    except APIError as e:
        logger.error("image_push_failed", reference=reference, error=str(e))
        raise DockerPushError(f"Push of {reference} failed: {e}", reference=reference) from e

    logger.info(
        "image_pushed",
        reference=reference,
        duration_ms=(time.monotonic() - started) * 1000,
    )
    return reference
