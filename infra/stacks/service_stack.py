"""
Service stack - ECS cluster, two-container Fargate task and service.

This stack deploys the application with:
- ECS cluster
- Security group open on the frontend (80) and backend (8080) ports
- Fargate task definition with the frontend and backend containers
- Fargate service with a public IP in the public subnet

The containers start from the ``latest`` image of each repository; the
pipeline's deploy stage later points them at the commit-tagged images.
"""

from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
)
from aws_cdk import (
    aws_ec2 as ec2,
)
from aws_cdk import (
    aws_ecr as ecr,
)
from aws_cdk import (
    aws_ecs as ecs,
)
from aws_cdk import (
    aws_logs as logs,
)
from constructs import Construct

from imagebuild.components import BACKEND, FRONTEND
from stacks.access import create_task_execution_role
from stacks.context import DeploymentContext


class ServiceStack(Stack):
    """
    Creates the compute placement for the application.

    Features:
    - Both containers in one task, sharing the task's network interface
    - Fixed replica count (``desired_count`` context, default 1)
    - Deployment circuit breaker rolls back failed deployments
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.IVpc,
        backend_repository: ecr.IRepository,
        frontend_repository: ecr.IRepository,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        context = DeploymentContext.from_scope(self)
        prefix = context.resource_prefix

        # =================================================================
        # Cluster & Security Group
        # =================================================================

        self.cluster = ecs.Cluster(
            self,
            "Cluster",
            cluster_name=f"{prefix}-cluster",
            vpc=vpc,
        )

        self.security_group = ec2.SecurityGroup(
            self,
            "ServiceSG",
            vpc=vpc,
            description="Allow HTTP to the frontend and backend containers",
            allow_all_outbound=True,
        )
        self.security_group.add_ingress_rule(
            peer=ec2.Peer.any_ipv4(),
            connection=ec2.Port.tcp(context.frontend_port),
            description="Frontend (nginx)",
        )
        self.security_group.add_ingress_rule(
            peer=ec2.Peer.any_ipv4(),
            connection=ec2.Port.tcp(context.backend_port),
            description="Backend API",
        )

        # =================================================================
        # Task Definition
        # =================================================================

        execution_role = create_task_execution_role(
            self,
            "TaskExecutionRole",
            repositories=[backend_repository, frontend_repository],
        )

        self.task_definition = ecs.FargateTaskDefinition(
            self,
            "Task",
            family=f"{prefix}-task",
            cpu=context.task_cpu,
            memory_limit_mib=context.task_memory_mib,
            execution_role=execution_role,
        )

        self.frontend_container = self._add_container(
            name=FRONTEND.name,
            repository=frontend_repository,
            port=context.frontend_port,
            prefix=prefix,
        )
        self.backend_container = self._add_container(
            name=BACKEND.name,
            repository=backend_repository,
            port=context.backend_port,
            prefix=prefix,
        )

        # =================================================================
        # Fargate Service
        # =================================================================

        self.service = ecs.FargateService(
            self,
            "Service",
            service_name=f"{prefix}-service",
            cluster=self.cluster,
            task_definition=self.task_definition,
            desired_count=context.desired_count,
            security_groups=[self.security_group],
            assign_public_ip=True,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            min_healthy_percent=100,
            max_healthy_percent=200,
            circuit_breaker=ecs.DeploymentCircuitBreaker(rollback=True),
        )

        # =================================================================
        # Outputs
        # =================================================================

        CfnOutput(
            self,
            "ClusterName",
            value=self.cluster.cluster_name,
            description="ECS cluster name",
        )

        CfnOutput(
            self,
            "ServiceName",
            value=self.service.service_name,
            description="ECS service name",
        )

        CfnOutput(
            self,
            "TaskDefinitionFamily",
            value=self.task_definition.family,
            description="ECS task definition family name",
        )

        CfnOutput(
            self,
            "ServiceSecurityGroup",
            value=self.security_group.security_group_id,
            description="ECS service security group ID",
        )

    def _add_container(
        self,
        *,
        name: str,
        repository: ecr.IRepository,
        port: int,
        prefix: str,
    ) -> ecs.ContainerDefinition:
        log_group = logs.LogGroup(
            self,
            f"{name.title()}Logs",
            log_group_name=f"/ecs/{prefix}-{name}",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY,
        )

        container = self.task_definition.add_container(
            name,
            container_name=name,
            image=ecs.ContainerImage.from_ecr_repository(repository, "latest"),
            essential=True,
            logging=ecs.LogDrivers.aws_logs(
                log_group=log_group,
                stream_prefix=name,
            ),
            stop_timeout=Duration.seconds(30),
        )
        container.add_port_mappings(ecs.PortMapping(container_port=port, protocol=ecs.Protocol.TCP))
        return container
