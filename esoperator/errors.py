"""
Errors raised while generating Elasticsearch pod specifications.

Generation is all-or-nothing: any of these errors aborts the whole cluster.
"""

from typing import Optional, Union


class PodSpecError(Exception):
    """Base class for pod spec generation errors."""
    pass


class VersionParseError(PodSpecError):
    """Raised when a version string cannot be parsed."""
    pass


class ConfigValidationError(PodSpecError):
    """Raised when Elasticsearch configuration overrides are invalid."""
    pass


class InitContainerError(PodSpecError):
    """Raised when init containers cannot be generated (bad image, unsupported flag)."""
    pass


class PlaceholderResolutionError(PodSpecError):
    """Raised when a reserved placeholder token would survive into a created pod."""
    pass


class PodSpecGenerationError(PodSpecError):
    """
    Generation failed for one replica of a node group.

    Carries the cluster, node group and replica ordinal being built so
    operators can tell which node group is at fault. The original
    error is available as ``cause`` (and ``__cause__``).
    """

    def __init__(
        self,
        cluster_name: str,
        node_group: Union[str, int],
        ordinal: int,
        cause: Optional[BaseException] = None
    ):
        self.cluster_name = cluster_name
        self.node_group = node_group
        self.ordinal = ordinal
        self.cause = cause
        super().__init__(
            f"Failed to generate pod spec for cluster '{cluster_name}', "
            f"node group '{node_group}', replica {ordinal}: {cause}"
        )
