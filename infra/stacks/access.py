"""
IAM roles and grants for the running task and the pipeline stages.

Each principal gets only what its stage needs:

- Task execution role: pull both images, write container logs
- CodeBuild project: pull/push both repositories, resolve the account id
- CodePipeline role: use the GitHub connection; artifact bucket and
  ECS deploy permissions are added by the CDK actions themselves
"""

from collections.abc import Iterable

from aws_cdk import aws_codebuild as codebuild
from aws_cdk import aws_ecr as ecr
from aws_cdk import aws_iam as iam
from constructs import Construct

ECS_TASK_EXECUTION_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"


def create_task_execution_role(
    scope: Construct,
    construct_id: str,
    *,
    repositories: Iterable[ecr.IRepository],
) -> iam.Role:
    """Role ECS assumes to pull images and ship logs for the task."""
    role = iam.Role(
        scope,
        construct_id,
        assumed_by=iam.ServicePrincipal("ecs-tasks.amazonaws.com"),
        description="ECS task execution role (image pull, log delivery)",
        managed_policies=[
            iam.ManagedPolicy.from_aws_managed_policy_name(ECS_TASK_EXECUTION_POLICY),
        ],
    )
    for repository in repositories:
        repository.grant_pull(role)
    return role


def grant_build_permissions(
    project: codebuild.IProject,
    *,
    repositories: Iterable[ecr.IRepository],
) -> None:
    """
    Grant the build project what ``imagebuild run`` calls.

    ``grant_pull_push`` includes ``ecr:GetAuthorizationToken``; the account id
    used for the registry host comes from ``sts:GetCallerIdentity``.
    """
    for repository in repositories:
        repository.grant_pull_push(project)

    project.add_to_role_policy(
        iam.PolicyStatement(
            actions=["sts:GetCallerIdentity"],
            resources=["*"],
        )
    )


def create_pipeline_role(
    scope: Construct,
    construct_id: str,
    *,
    connection_arn: str,
) -> iam.Role:
    """Service role for CodePipeline, allowed to use the GitHub connection."""
    role = iam.Role(
        scope,
        construct_id,
        assumed_by=iam.ServicePrincipal("codepipeline.amazonaws.com"),
        description="CodePipeline service role",
    )
    role.add_to_policy(
        iam.PolicyStatement(
            actions=["codestar-connections:UseConnection"],
            resources=[connection_arn],
        )
    )
    return role
