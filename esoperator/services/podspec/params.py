"""
Parameters and results of pod spec generation.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional, Union

from kubernetes import client

from ...config import Settings, get_settings
from ...schemas import ClusterSpec, NodeGroup
from .es_config import CanonicalConfig
from .labels import get_template_hash
from .volumes import (
    PROBE_USER_NAME,
    ConfigMapVolume,
    SecretVolume,
    unicast_hosts_volume,
    users_secret_volume,
)


@dataclass(frozen=True)
class KeystoreResources:
    """
    Secure settings injected through the Elasticsearch keystore.

    Built by the keystore collaborator: a volume holding the user secret, an
    init container creating the keystore from it, and an opaque version of the
    secret content. The version is not visible in the pod template, so it is
    folded into a dedicated checksum label.
    """
    volume: client.V1Volume
    init_container: client.V1Container
    version: str


@dataclass(frozen=True)
class NewPodSpecParams:
    """
    Everything needed to build the pod template of one Elasticsearch node.

    A template holding the cluster-wide values (volumes, keystore, settings) is
    built once per reconciliation; the expander derives one instance per
    replica by filling in the cluster and node group.
    """
    users_secret_volume: SecretVolume
    unicast_hosts_volume: ConfigMapVolume
    probe_user: str = PROBE_USER_NAME
    keystore_resources: Optional[KeystoreResources] = None
    settings: Optional[Settings] = None
    cluster: Optional[ClusterSpec] = None
    node_group: Optional[NodeGroup] = None

    def for_node(self, cluster: ClusterSpec, node_group: NodeGroup) -> "NewPodSpecParams":
        return dataclasses.replace(self, cluster=cluster, node_group=node_group)

    @property
    def effective_settings(self) -> Settings:
        return self.settings if self.settings is not None else get_settings()


def new_params_template(
    cluster: ClusterSpec,
    keystore_resources: Optional[KeystoreResources] = None,
    settings: Optional[Settings] = None,
    probe_user: str = PROBE_USER_NAME
) -> NewPodSpecParams:
    """Build the cluster-wide parameters of a generation pass."""
    return NewPodSpecParams(
        users_secret_volume=users_secret_volume(cluster.name),
        unicast_hosts_volume=unicast_hosts_volume(cluster.name),
        probe_user=probe_user,
        keystore_resources=keystore_resources,
        settings=settings,
        cluster=cluster,
    )


@dataclass
class PodSpecContext:
    """
    Desired state of one future Elasticsearch pod, before it gets a name.

    ``config`` is the canonical configuration to render into the per-pod
    config secret. ``node_group_index`` and ``ordinal`` locate the replica in
    the cluster spec; they are not part of the template.
    """
    node_group: NodeGroup
    pod_template: client.V1PodTemplateSpec
    config: CanonicalConfig
    node_group_index: int = 0
    ordinal: int = 0

    @property
    def node_group_identity(self) -> Union[str, int]:
        return self.node_group.identity(self.node_group_index)

    @property
    def template_hash(self) -> Optional[str]:
        return get_template_hash(self.pod_template)
