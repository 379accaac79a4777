"""
Elasticsearch cluster specification schemas.

These Pydantic models describe the desired state of a cluster as handed to the
pod spec generator on every reconciliation. They are immutable: generation
never mutates its input.

Cluster and node group names end up in pod names, so they are validated as
DNS-1123 labels here rather than rejected later by the API server.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator
from kubernetes import client

from .utils.resource_naming import DNS_1123_LABEL_PATTERN, MAX_NAME_LENGTH


class HTTPSettings(BaseModel):
    """HTTP layer settings shared by every node of the cluster."""
    tls_enabled: bool = Field(default=True, description="Serve the REST API over TLS")


class NodeGroup(BaseModel):
    """A set of Elasticsearch nodes sharing a pod template and configuration."""
    name: Optional[str] = Field(
        None,
        pattern=DNS_1123_LABEL_PATTERN,
        max_length=MAX_NAME_LENGTH,
        description="Node group name, used in pod names"
    )
    count: int = Field(default=0, ge=0, description="Number of replicas")
    config: Optional[Dict[str, Any]] = Field(None, description="elasticsearch.yml overrides")
    pod_template: Optional[client.V1PodTemplateSpec] = Field(
        None, description="User-provided pod template, takes precedence over defaults"
    )
    volume_claim_templates: List[client.V1PersistentVolumeClaim] = Field(
        default_factory=list, description="Persistent volume claim templates"
    )

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    def identity(self, index: int) -> Union[str, int]:
        """Name of the group, or its position in the cluster spec when unnamed."""
        return self.name if self.name else index


class ClusterSpec(BaseModel):
    """Desired state of an Elasticsearch cluster."""
    name: str = Field(
        ...,
        pattern=DNS_1123_LABEL_PATTERN,
        max_length=MAX_NAME_LENGTH,
        description="Cluster name"
    )
    namespace: str = Field(default="default", description="Namespace the cluster lives in")
    version: str = Field(..., description="Elasticsearch version (e.g. 7.2.0)")
    image: Optional[str] = Field(None, description="Custom image, defaults to the official one")
    set_vm_max_map_count: Optional[bool] = Field(
        None, description="Run a privileged init container raising vm.max_map_count"
    )
    node_groups: List[NodeGroup] = Field(default_factory=list)
    http: HTTPSettings = Field(default_factory=HTTPSettings)
    secure_settings_secret: Optional[str] = Field(
        None, description="User secret whose entries are loaded into the keystore"
    )

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    @field_validator('node_groups')
    @classmethod
    def validate_node_groups(cls, v):
        # unnamed groups are identified by position, which must not clash with a name either
        seen = set()
        for index, group in enumerate(v):
            identity = str(group.identity(index))
            if identity in seen:
                raise ValueError(f'Duplicate node group "{identity}": node group names must be unique')
            seen.add(identity)
        return v

    def node_count(self) -> int:
        return sum(group.count for group in self.node_groups)
