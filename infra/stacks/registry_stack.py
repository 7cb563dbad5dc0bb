"""
Registry stack - ECR repositories for the backend and frontend images.
"""

from aws_cdk import CfnOutput, RemovalPolicy, Stack
from aws_cdk import aws_ecr as ecr
from constructs import Construct

from imagebuild.components import COMPONENTS
from stacks.context import DeploymentContext


class RegistryStack(Stack):
    """
    Creates one ECR repository per component.

    Repositories are retained when the stack is deleted so pushed images
    survive a teardown of the rest of the deployment.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        context = DeploymentContext.from_scope(self)

        self.repositories: dict[str, ecr.Repository] = {}
        for component in COMPONENTS:
            repository = ecr.Repository(
                self,
                f"{component.name.title()}Repository",
                repository_name=context.repository_name(component.name),
                image_tag_mutability=ecr.TagMutability.MUTABLE,
                image_scan_on_push=True,
                removal_policy=RemovalPolicy.RETAIN,
                lifecycle_rules=[
                    ecr.LifecycleRule(
                        description=f"Keep the newest {context.max_image_count} images",
                        max_image_count=context.max_image_count,
                    ),
                ],
            )
            self.repositories[component.name] = repository

            CfnOutput(
                self,
                f"{component.name.title()}RepositoryUri",
                value=repository.repository_uri,
                description=f"ECR repository URI for the {component.name} image",
            )

    @property
    def backend_repository(self) -> ecr.IRepository:
        return self.repositories["backend"]

    @property
    def frontend_repository(self) -> ecr.IRepository:
        return self.repositories["frontend"]
