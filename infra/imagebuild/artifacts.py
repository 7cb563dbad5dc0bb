"""
Deployment artifacts written at the end of a build.

Two files are produced:

- ``imageDefinitions.json``: fixed-shape document listing the image URI of
  every component, built or not::

      {"ImageURI":{"backend":"<repo>:<tag>","frontend":"<repo>:<tag>"}}

- ``ecs-imagedefinitions.json``: the list format read by the CodePipeline
  ECS standard deploy action, restricted to components built in this run so
  containers whose source is absent keep their current image.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from imagebuild.components import BuildTarget
from imagebuild.logging import get_logger

logger = get_logger(__name__)

IMAGE_DEFINITIONS_FILE = "imageDefinitions.json"
ECS_IMAGE_DEFINITIONS_FILE = "ecs-imagedefinitions.json"


@dataclass(frozen=True)
class ArtifactPaths:
    image_definitions: Path
    ecs_image_definitions: Path


def image_uri_document(targets: Iterable[BuildTarget], tag: str) -> dict[str, dict[str, str]]:
    return {"ImageURI": {target.name: target.reference(tag) for target in targets}}


def ecs_image_definitions(targets: Iterable[BuildTarget], tag: str) -> list[dict[str, str]]:
    return [{"name": target.name, "imageUri": target.reference(tag)} for target in targets]


def write_artifacts(
    output_dir: Path,
    targets: list[BuildTarget],
    tag: str,
    built: set[str],
) -> ArtifactPaths:
    """
    Write both artifact files into ``output_dir``.

    Args:
        output_dir: Directory listed in the buildspec ``artifacts`` section
        targets: All components, in build order
        tag: Image tag of this run
        built: Names of the components built in this run
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = ArtifactPaths(
        image_definitions=output_dir / IMAGE_DEFINITIONS_FILE,
        ecs_image_definitions=output_dir / ECS_IMAGE_DEFINITIONS_FILE,
    )

    paths.image_definitions.write_text(
        json.dumps(image_uri_document(targets, tag), separators=(",", ":")) + "\n"
    )
    paths.ecs_image_definitions.write_text(
        json.dumps(ecs_image_definitions([t for t in targets if t.name in built], tag)) + "\n"
    )

    logger.info(
        "artifacts_written",
        image_definitions=str(paths.image_definitions),
        ecs_image_definitions=str(paths.ecs_image_definitions),
        built=sorted(built),
    )
    return paths
