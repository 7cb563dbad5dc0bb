"""
Structured logging configuration using structlog.

CodeBuild streams stdout to CloudWatch Logs, so the build tool writes one JSON
object per line when running in CodeBuild and pretty console output locally.

Usage:
    from imagebuild.logging import get_logger

    logger = get_logger(__name__)
    logger.info("image_built", component="backend", reference="repo:abc1234")

Every line carries the CodeBuild build identifier (``build_id``) when the
``CODEBUILD_BUILD_ID`` environment variable is present, so log lines from
concurrent builds of the same project can be told apart.
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


def _add_codebuild_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the CodeBuild build id when running in CodeBuild."""
    build_id = os.environ.get("CODEBUILD_BUILD_ID")
    if build_id and "build_id" not in event_dict:
        event_dict["build_id"] = build_id
    return event_dict


def _convert_duration_to_seconds(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Convert duration_ms to duration (seconds, rounded to milliseconds).

    Image builds and pushes run for seconds to minutes, so seconds read better
    in the CodeBuild console than raw milliseconds.
    """
    if "duration_ms" in event_dict:
        duration_ms = event_dict.pop("duration_ms")
        event_dict["duration"] = round(duration_ms / 1000, 3)
    return event_dict


def configure_logging(json_format: bool = True, log_level: str = "INFO") -> None:
    """
    Configure structlog for the build tool.

    Uses stdlib integration so boto3 and docker SDK log records are rendered
    with the same formatter.

    Args:
        json_format: If True, output JSON (CodeBuild). If False, pretty console output (local runs).
        log_level: Minimum log level to output.
    """
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)

    # Processors that run before passing to stdlib
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_codebuild_fields,
        _convert_duration_to_seconds,
    ]

    if json_format:
        renderer: Processor = structlog.processors.JSONRenderer()
        pre_chain.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level_int)

    # botocore and urllib3 are chatty at DEBUG
    for noisy in ("botocore", "urllib3", "docker"):
        logging.getLogger(noisy).setLevel(max(log_level_int, logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.
    """
    return structlog.get_logger(name)


def bind_contextvars(**kwargs: Any) -> None:
    """
    Bind key-value pairs to the current context.

    These values are included in all subsequent log lines of the run,
    e.g. ``bind_contextvars(image_tag="abc1234")``.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_contextvars() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
