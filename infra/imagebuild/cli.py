"""
Command line entry point.

Runs as the only build command of the CodeBuild project:

    imagebuild run

Exit codes:
    0  success
    1  build, push, login or configuration failure
    2  invalid settings (missing or empty repository URLs)
"""

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from imagebuild.artifacts import write_artifacts
from imagebuild.exceptions import ImageBuildError
from imagebuild.logging import clear_contextvars, configure_logging, get_logger
from imagebuild.runner import BuildRunner
from imagebuild.settings import BuildSettings

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_SETTINGS = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagebuild",
        description="Build, push and describe the backend and frontend container images",
    )
    parser.add_argument(
        "--source-dir",
        type=Path,
        default=Path("."),
        help="Checkout root containing the component directories (default: .)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory to write the image definition artifacts to (default: .)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Log in, build, push and write artifacts")
    run.add_argument(
        "--skip-push",
        action="store_true",
        help="Build images but do not push them",
    )
    run.add_argument(
        "--no-login",
        action="store_true",
        help="Do not log the Docker daemon in to ECR",
    )

    subparsers.add_parser("plan", help="Show what a run would do without Docker or AWS access")
    subparsers.add_parser("write-artifacts", help="Only write the image definition artifacts")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = BuildSettings()
    except ValidationError as e:
        # Logging is not configured yet; settings carry the log options
        print(f"Invalid build settings:\n{e}", file=sys.stderr)
        return EXIT_INVALID_SETTINGS

    configure_logging(json_format=settings.LOG_JSON, log_level=settings.LOG_LEVEL)
    clear_contextvars()

    runner = BuildRunner(
        settings,
        source_dir=args.source_dir,
        output_dir=args.output_dir,
        login=not getattr(args, "no_login", False),
        push=not getattr(args, "skip_push", False),
    )

    if args.command == "plan":
        plan = runner.plan()
        print(
            json.dumps(
                {
                    "image_tag": plan.image_tag,
                    "build": plan.build,
                    "skip": plan.skip,
                    "image_definitions": plan.image_uris,
                },
                indent=2,
            )
        )
        return EXIT_OK

    if args.command == "write-artifacts":
        plan = runner.plan()
        write_artifacts(args.output_dir, runner.targets, runner.image_tag, built=set(plan.build))
        return EXIT_OK

    try:
        result = runner.run()
    except ImageBuildError as e:
        logger.error("build_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE

    print(
        f"Built {len(result.built)} image(s) ({', '.join(result.built) or 'none'}) "
        f"tagged {result.image_tag}; pushed {len(result.pushed)} reference(s)"
    )
    return EXIT_OK
