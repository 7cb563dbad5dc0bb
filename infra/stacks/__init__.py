"""CDK Stacks for the fullstack Fargate deployment."""

from .network_stack import NetworkStack
from .pipeline_stack import PipelineStack
from .registry_stack import RegistryStack
from .service_stack import ServiceStack

__all__ = [
    "NetworkStack",
    "PipelineStack",
    "RegistryStack",
    "ServiceStack",
]
