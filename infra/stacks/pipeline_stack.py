"""
Pipeline stack - GitHub connection, CodeBuild project and CodePipeline.

Stages:
- Source: GitHub repository through a CodeStar connection
- Build: ``imagebuild run`` builds, pushes and describes both images
- Deploy: ECS standard deployment of the service

A git push to the configured branch starts the pipeline.

Note: a connection created by this stack starts in PENDING state and has to
be completed once in the AWS console before the first run.
"""

from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
)
from aws_cdk import (
    aws_codebuild as codebuild,
)
from aws_cdk import (
    aws_codepipeline as codepipeline,
)
from aws_cdk import (
    aws_codepipeline_actions as codepipeline_actions,
)
from aws_cdk import (
    aws_codestarconnections as codestarconnections,
)
from aws_cdk import (
    aws_ecr as ecr,
)
from aws_cdk import (
    aws_ecs as ecs,
)
from constructs import Construct

from imagebuild.artifacts import ECS_IMAGE_DEFINITIONS_FILE, IMAGE_DEFINITIONS_FILE
from imagebuild.components import BACKEND, FRONTEND
from stacks.access import create_pipeline_role, grant_build_permissions
from stacks.context import DeploymentContext

BUILD_PYTHON_VERSION = "3.12"

# Connection names are limited to 32 characters
CONNECTION_NAME_MAX_LENGTH = 32


def image_build_spec() -> dict:
    """
    Buildspec of the CodeBuild project.

    Login, tag resolution, build, push and the artifact files are all handled
    by ``imagebuild run``; see ``imagebuild.runner``. ``appspec.yaml`` and
    ``taskdef.json`` are passed through from the repository root when present.
    """
    return {
        "version": "0.2",
        "phases": {
            "install": {
                "runtime-versions": {"python": BUILD_PYTHON_VERSION},
                "commands": ["pip install ."],
            },
            "build": {
                "commands": ["imagebuild run"],
            },
        },
        "artifacts": {
            "files": [
                IMAGE_DEFINITIONS_FILE,
                ECS_IMAGE_DEFINITIONS_FILE,
                "appspec.yaml",
                "taskdef.json",
            ],
            "discard-paths": "yes",
        },
    }


class PipelineStack(Stack):
    """Creates the source → build → deploy pipeline for the service."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        service: ecs.IBaseService,
        backend_repository: ecr.IRepository,
        frontend_repository: ecr.IRepository,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        context = DeploymentContext.from_scope(self)
        owner, repo = context.require_source()
        prefix = context.resource_prefix
        repositories = [backend_repository, frontend_repository]

        # =================================================================
        # GitHub Connection
        # =================================================================

        if context.connection_arn:
            self.connection = None
            connection_arn = context.connection_arn
        else:
            self.connection = codestarconnections.CfnConnection(
                self,
                "GitHubConnection",
                connection_name=f"{prefix}-github"[:CONNECTION_NAME_MAX_LENGTH],
                provider_type="GitHub",
            )
            connection_arn = self.connection.attr_connection_arn

        # =================================================================
        # Build Project
        # =================================================================

        self.build_project = codebuild.PipelineProject(
            self,
            "BuildProject",
            project_name=f"{prefix}-build",
            description="Builds and pushes the backend and frontend images",
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                compute_type=codebuild.ComputeType.SMALL,
                # Docker daemon access
                privileged=True,
            ),
            environment_variables={
                BACKEND.repository_env_var: codebuild.BuildEnvironmentVariable(
                    value=backend_repository.repository_uri,
                ),
                FRONTEND.repository_env_var: codebuild.BuildEnvironmentVariable(
                    value=frontend_repository.repository_uri,
                ),
                "AWS_REGION": codebuild.BuildEnvironmentVariable(value=self.region),
            },
            build_spec=codebuild.BuildSpec.from_object(image_build_spec()),
            timeout=Duration.minutes(30),
        )

        grant_build_permissions(self.build_project, repositories=repositories)

        # =================================================================
        # Pipeline
        # =================================================================

        source_output = codepipeline.Artifact("SourceOutput")
        build_output = codepipeline.Artifact("BuildOutput")

        source_action = codepipeline_actions.CodeStarConnectionsSourceAction(
            action_name="GitHub_Source",
            owner=owner,
            repo=repo,
            branch=context.github_branch,
            connection_arn=connection_arn,
            output=source_output,
            trigger_on_push=True,
        )

        build_action = codepipeline_actions.CodeBuildAction(
            action_name="Build_Images",
            project=self.build_project,
            input=source_output,
            outputs=[build_output],
        )

        deploy_action = codepipeline_actions.EcsDeployAction(
            action_name="Deploy_Service",
            service=service,
            image_file=build_output.at_path(ECS_IMAGE_DEFINITIONS_FILE),
            deployment_timeout=Duration.minutes(30),
        )

        self.pipeline = codepipeline.Pipeline(
            self,
            "Pipeline",
            pipeline_name=f"{prefix}-pipeline",
            pipeline_type=codepipeline.PipelineType.V2,
            role=create_pipeline_role(self, "PipelineRole", connection_arn=connection_arn),
            stages=[
                codepipeline.StageProps(stage_name="Source", actions=[source_action]),
                codepipeline.StageProps(stage_name="Build", actions=[build_action]),
                codepipeline.StageProps(stage_name="Deploy", actions=[deploy_action]),
            ],
            # Push trigger on the tracked branch
            triggers=[
                codepipeline.TriggerProps(
                    provider_type=codepipeline.ProviderType.CODE_STAR_SOURCE_CONNECTION,
                    git_configuration=codepipeline.GitConfiguration(
                        source_action=source_action,
                        push_filter=[
                            codepipeline.GitPushFilter(branches_includes=[context.github_branch]),
                        ],
                    ),
                ),
            ],
        )

        # =================================================================
        # Outputs
        # =================================================================

        CfnOutput(
            self,
            "PipelineName",
            value=self.pipeline.pipeline_name,
            description="CodePipeline name",
        )

        CfnOutput(
            self,
            "BuildProjectName",
            value=self.build_project.project_name,
            description="CodeBuild project name",
        )

        CfnOutput(
            self,
            "ConnectionArn",
            value=connection_arn,
            description="GitHub connection ARN (complete the handshake in the console if PENDING)",
        )
