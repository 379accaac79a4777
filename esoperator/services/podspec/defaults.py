"""
Default values for Elasticsearch pod templates.

Every helper returns fresh Kubernetes objects, so callers are free to mutate them.
"""

from typing import Iterable, List, Optional

from kubernetes import client

from ...config import Settings
from .labels import CLUSTER_NAME_LABEL_NAME
from .volumes import ELASTICSEARCH_DATA_VOLUME_NAME, SCRIPTS_MOUNT_PATH

ELASTICSEARCH_CONTAINER_NAME = "elasticsearch"

HTTP_PORT = 9200
TRANSPORT_PORT = 9300

READINESS_PROBE_SCRIPT = f"{SCRIPTS_MOUNT_PATH}/readiness-probe-script.sh"


def default_container_ports() -> List[client.V1ContainerPort]:
    return [
        client.V1ContainerPort(name="http", container_port=HTTP_PORT, protocol="TCP"),
        client.V1ContainerPort(name="transport", container_port=TRANSPORT_PORT, protocol="TCP"),
    ]


def new_readiness_probe() -> client.V1Probe:
    """
    Readiness probe running the readiness script shipped in the scripts config map.

    The script queries the local node with the probe user credentials.
    """
    return client.V1Probe(
        failure_threshold=3,
        initial_delay_seconds=10,
        period_seconds=5,
        success_threshold=1,
        timeout_seconds=5,
        _exec=client.V1ExecAction(command=["bash", "-c", READINESS_PROBE_SCRIPT])
    )


def default_affinity(cluster_name: str, topology_key: str = "kubernetes.io/hostname") -> client.V1Affinity:
    """
    Prefer spreading the nodes of a cluster across hosts.

    A preference, not a requirement: small clusters must still schedule on a
    single host.
    """
    return client.V1Affinity(
        pod_anti_affinity=client.V1PodAntiAffinity(
            preferred_during_scheduling_ignored_during_execution=[
                client.V1WeightedPodAffinityTerm(
                    weight=100,
                    pod_affinity_term=client.V1PodAffinityTerm(
                        label_selector=client.V1LabelSelector(
                            match_labels={CLUSTER_NAME_LABEL_NAME: cluster_name}
                        ),
                        topology_key=topology_key
                    )
                )
            ]
        )
    )


def default_volume_claim_templates(settings: Settings) -> List[client.V1PersistentVolumeClaim]:
    """The data volume claim every node gets unless the user declares one."""
    return [
        client.V1PersistentVolumeClaim(
            metadata=client.V1ObjectMeta(name=ELASTICSEARCH_DATA_VOLUME_NAME),
            spec=client.V1PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                resources=client.V1VolumeResourceRequirements(
                    requests={"storage": settings.default_data_volume_size}
                )
            )
        )
    ]


def append_default_pvcs(
    existing: Iterable[client.V1PersistentVolumeClaim],
    pod_spec: Optional[client.V1PodSpec],
    defaults: Iterable[client.V1PersistentVolumeClaim]
) -> List[client.V1PersistentVolumeClaim]:
    """
    Append default claim templates to the user-declared ones.

    A default is skipped when a claim template with the same name exists, or
    when the pod template already provides a volume with that name (for
    instance an emptyDir data volume).
    """
    claims = list(existing)
    claim_names = {claim.metadata.name for claim in claims if claim.metadata}
    volume_names = {volume.name for volume in ((pod_spec.volumes if pod_spec else None) or [])}

    for default in defaults:
        name = default.metadata.name
        if name in claim_names or name in volume_names:
            continue
        claims.append(default)

    return claims
