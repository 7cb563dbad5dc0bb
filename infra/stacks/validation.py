"""
CDK validation aspects for pre-deployment checks.

These aspects run during `cdk synth` and add errors/warnings/info
annotations, catching issues before deployment.

Usage:
    from stacks.validation import add_validation_aspects
    add_validation_aspects(app)
"""

from collections.abc import Iterable
from typing import Any

import aws_cdk as cdk
import jsii
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecr as ecr
from aws_cdk import aws_ecs as ecs
from constructs import IConstruct

from imagebuild.components import COMPONENTS

DEFAULT_ALLOWED_INGRESS_PORTS = tuple(sorted(c.container_port for c in COMPONENTS))


def _field(rule: Any, *names: str) -> Any:
    """Read a rule field that may come as camelCase, PascalCase or snake_case."""
    for name in names:
        if isinstance(rule, dict) and name in rule:
            return rule[name]
        if hasattr(rule, name):
            return getattr(rule, name)
    return None


@jsii.implements(cdk.IAspect)
class IngressPortAspect:
    """
    Validates that security groups only accept the application ports.

    Checks:
    - Every inline ingress rule of a security group targets exactly one
      allowed TCP port
    - Every standalone ingress rule does the same
    """

    def __init__(self, allowed_ports: Iterable[int] = DEFAULT_ALLOWED_INGRESS_PORTS):
        self._allowed_ports = frozenset(allowed_ports)

    def visit(self, node: IConstruct) -> None:
        if isinstance(node, ec2.CfnSecurityGroup):
            rules = cdk.Stack.of(node).resolve(node.security_group_ingress) or []
            for rule in rules:
                self._check_rule(node, rule)
        elif isinstance(node, ec2.CfnSecurityGroupIngress):
            self._check_rule(node, node)

    def _check_rule(self, node: IConstruct, rule: Any) -> None:
        protocol = str(_field(rule, "ipProtocol", "IpProtocol", "ip_protocol"))
        from_port = _field(rule, "fromPort", "FromPort", "from_port")
        to_port = _field(rule, "toPort", "ToPort", "to_port")

        if protocol != "tcp" or from_port != to_port or from_port not in self._allowed_ports:
            allowed = ", ".join(str(p) for p in sorted(self._allowed_ports))
            cdk.Annotations.of(node).add_error(
                f"Ingress rule {protocol} {from_port}-{to_port} is not allowed; "
                f"only TCP {allowed} may be opened"
            )


@jsii.implements(cdk.IAspect)
class ReplicaCountAspect:
    """Notes ECS services that run without redundancy."""

    def visit(self, node: IConstruct) -> None:
        if isinstance(node, ecs.CfnService):
            desired_count = cdk.Stack.of(node).resolve(node.desired_count)
            if isinstance(desired_count, int) and desired_count < 2:
                cdk.Annotations.of(node).add_info(
                    f"ECS service runs {desired_count} task(s); deployments and task "
                    "failures cause downtime"
                )


@jsii.implements(cdk.IAspect)
class ImageScanAspect:
    """Validates that ECR repositories scan images on push."""

    def visit(self, node: IConstruct) -> None:
        if isinstance(node, ecr.CfnRepository):
            config = cdk.Stack.of(node).resolve(node.image_scanning_configuration) or {}
            if not _field(config, "scanOnPush", "ScanOnPush", "scan_on_push"):
                cdk.Annotations.of(node).add_warning_v2(
                    "fullstack:ecr-scan-on-push",
                    "ECR repository does not scan images on push",
                )


def add_validation_aspects(
    scope: cdk.App,
    allowed_ingress_ports: Iterable[int] = DEFAULT_ALLOWED_INGRESS_PORTS,
    enable_replica_notes: bool = True,
) -> None:
    """
    Add validation aspects to all stacks in the CDK app.

    Args:
        scope: The CDK App to add aspects to
        allowed_ingress_ports: TCP ports security groups may open
        enable_replica_notes: Whether to annotate services without redundancy
    """
    cdk.Aspects.of(scope).add(IngressPortAspect(allowed_ports=allowed_ingress_ports))
    cdk.Aspects.of(scope).add(ImageScanAspect())

    if enable_replica_notes:
        cdk.Aspects.of(scope).add(ReplicaCountAspect())
