"""
Network stack - VPC, public subnet, internet gateway and route table.
"""

from aws_cdk import CfnOutput, Stack
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from stacks.context import DeploymentContext


class NetworkStack(Stack):
    """
    Creates the public network the Fargate task runs in.

    A single PUBLIC subnet configuration makes the VPC construct create the
    internet gateway, one route table per subnet and the 0.0.0.0/0 route to the
    gateway. No NAT gateways: tasks get a public IP instead.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        context = DeploymentContext.from_scope(self)

        self.vpc = ec2.Vpc(
            self,
            "Vpc",
            ip_addresses=ec2.IpAddresses.cidr(context.vpc_cidr),
            max_azs=context.max_azs,
            nat_gateways=0,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                    map_public_ip_on_launch=True,
                ),
            ],
        )

        self.public_subnets = self.vpc.public_subnets

        CfnOutput(
            self,
            "VpcId",
            value=self.vpc.vpc_id,
            description="VPC ID",
        )
