"""
Sandbox building blocks: limits, images, invocations and bounded execution.
"""

from .base import ExecutionRequest, ExecutionResult, SandboxInvocation
from .executor import BoundedExecutor
from .images import ImageProvisioner
from .invocation import SandboxInvocationBuilder
from .limits import ResourceLimiter, ResourceLimits
from .runtime import ContainerRuntime

__all__ = [
    "BoundedExecutor",
    "ContainerRuntime",
    "ExecutionRequest",
    "ExecutionResult",
    "ImageProvisioner",
    "ResourceLimiter",
    "ResourceLimits",
    "SandboxInvocation",
    "SandboxInvocationBuilder",
]
