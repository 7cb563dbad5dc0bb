#!/usr/bin/env python3
"""
AWS CDK app entry point for the fullstack Fargate deployment.

Stacks:
    FullstackNetwork   VPC, public subnet, internet gateway, route table
    FullstackRegistry  ECR repositories for the backend and frontend images
    FullstackService   ECS cluster, two-container task, Fargate service
    FullstackPipeline  GitHub connection, CodeBuild project, CodePipeline

The pipeline stack needs the GitHub source:
    cdk deploy --all --context github_owner=acme --context github_repo=shop
"""

import aws_cdk as cdk

from stacks.context import DeploymentContext
from stacks.network_stack import NetworkStack
from stacks.pipeline_stack import PipelineStack
from stacks.registry_stack import RegistryStack
from stacks.service_stack import ServiceStack
from stacks.validation import add_validation_aspects


def build_app(app: cdk.App) -> cdk.App:
    """Add all stacks to ``app``. Split out of the module body for tests."""
    env = cdk.Environment(
        account=app.node.try_get_context("account"),
        region=app.node.try_get_context("region") or "us-east-1",
    )
    stack_prefix = DeploymentContext.from_scope(app).resource_prefix.title()

    network = NetworkStack(app, f"{stack_prefix}Network", env=env)
    registry = RegistryStack(app, f"{stack_prefix}Registry", env=env)

    service = ServiceStack(
        app,
        f"{stack_prefix}Service",
        vpc=network.vpc,
        backend_repository=registry.backend_repository,
        frontend_repository=registry.frontend_repository,
        env=env,
    )

    PipelineStack(
        app,
        f"{stack_prefix}Pipeline",
        service=service.service,
        backend_repository=registry.backend_repository,
        frontend_repository=registry.frontend_repository,
        env=env,
    )

    add_validation_aspects(app)
    return app


if __name__ == "__main__":
    app = build_app(cdk.App())
    app.synth()
