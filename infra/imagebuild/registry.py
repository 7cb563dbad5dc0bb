"""
ECR authentication.

Replaces ``aws ecr get-login-password | docker login`` with boto3 calls and a
docker SDK login against ``<account>.dkr.ecr.<region>.amazonaws.com``.
"""

import base64
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from docker.errors import APIError

from imagebuild.exceptions import ConfigurationError, RegistryLoginError
from imagebuild.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistryCredentials:
    """Short-lived Docker credentials for an ECR registry."""

    registry: str
    username: str
    password: str


def registry_host(account_id: str, region: str) -> str:
    """ECR registry host name for an account and region."""
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com"


def get_registry_credentials(region: str) -> RegistryCredentials:
    """
    Resolve the caller's account and fetch an ECR authorization token.

    Raises:
        ConfigurationError: If no region is configured
        RegistryLoginError: If the STS or ECR call fails
    """
    if not region:
        raise ConfigurationError("AWS_REGION is not set")

    try:
        account_id = boto3.client("sts", region_name=region).get_caller_identity()["Account"]
        response = boto3.client("ecr", region_name=region).get_authorization_token()
    except (BotoCoreError, ClientError) as e:
        logger.error("ecr_token_request_failed", region=region, error=str(e))
        raise RegistryLoginError(f"Could not obtain ECR credentials: {e}") from e

    auth_data = response["authorizationData"][0]
    token = base64.b64decode(auth_data["authorizationToken"]).decode("utf-8")
    username, password = token.split(":", 1)

    return RegistryCredentials(
        registry=registry_host(account_id, region),
        username=username,
        password=password,
    )


def login(docker_client: Any, credentials: RegistryCredentials) -> None:
    """
    Log the Docker daemon in to the registry.

    Raises:
        RegistryLoginError: If the daemon rejects the credentials
    """
    logger.info("ecr_login_started", registry=credentials.registry)
    try:
        docker_client.login(
            username=credentials.username,
            password=credentials.password,
            registry=credentials.registry,
            reauth=True,
        )
    except APIError as e:
        logger.error("ecr_login_failed", registry=credentials.registry, error=str(e))
        raise RegistryLoginError(f"Docker login to {credentials.registry} failed: {e}") from e
    logger.info("ecr_login_succeeded", registry=credentials.registry)
