"""
Fixtures for CDK stack tests.

Stacks are synthesized without an account/region (environment-agnostic), the
same way `cdk synth` runs in CI before credentials are available.
"""

from collections.abc import Callable

import pytest
from aws_cdk import App
from aws_cdk.assertions import Template

from stacks.network_stack import NetworkStack
from stacks.pipeline_stack import PipelineStack
from stacks.registry_stack import RegistryStack
from stacks.service_stack import ServiceStack

SOURCE_CONTEXT = {"github_owner": "acme", "github_repo": "shop"}


def _make_stacks(app: App) -> dict:
    """Wire the four stacks the way app.py does."""
    network = NetworkStack(app, "Network")
    registry = RegistryStack(app, "Registry")
    service = ServiceStack(
        app,
        "Service",
        vpc=network.vpc,
        backend_repository=registry.backend_repository,
        frontend_repository=registry.frontend_repository,
    )
    pipeline = PipelineStack(
        app,
        "Pipeline",
        service=service.service,
        backend_repository=registry.backend_repository,
        frontend_repository=registry.frontend_repository,
    )
    return {"network": network, "registry": registry, "service": service, "pipeline": pipeline}


@pytest.fixture
def build_stacks() -> Callable[..., dict]:
    """
    Factory building all stacks in a fresh App with extra context values.

    Usage:
        stacks = build_stacks(desired_count=2)
        template = Template.from_stack(stacks["service"])
    """

    def _build(**context) -> dict:
        return _make_stacks(App(context={**SOURCE_CONTEXT, **context}))

    return _build


@pytest.fixture
def stacks(build_stacks):
    return build_stacks()


@pytest.fixture
def network_template(stacks):
    return Template.from_stack(stacks["network"])


@pytest.fixture
def registry_template(stacks):
    return Template.from_stack(stacks["registry"])


@pytest.fixture
def service_template(stacks):
    return Template.from_stack(stacks["service"])


@pytest.fixture
def pipeline_template(stacks):
    return Template.from_stack(stacks["pipeline"])
