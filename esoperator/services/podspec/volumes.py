"""
Volumes for Elasticsearch Pods

This module describes every volume mounted in an Elasticsearch pod and the
two-phase naming protocol used for the volumes whose source depends on the pod:

1. Generation: secrets keyed by the pod name (transport certificates, config)
   and persistent volume claims are referenced through reserved placeholder
   tokens. The generated spec can be compared against live pods without
   committing to names.
2. Resolution: right before creation, resolve_placeholders() replaces every
   token with the concrete pod name / claim name. It refuses to return a pod
   that still carries a token, so no placeholder ever reaches the API server.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from kubernetes import client

from ...errors import PlaceholderResolutionError
from ...utils.resource_naming import (
    config_secret_name,
    http_certs_internal_secret_name,
    internal_users_secret_name,
    persistent_volume_claim_name,
    scripts_config_map_name,
    transport_certs_secret_name,
    unicast_hosts_config_map_name,
    xpack_file_realm_secret_name,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Reserved Placeholder Tokens
# =============================================================================

POD_NAME_PLACEHOLDER = "pod-name-placeholder"
CLAIM_NAME_PLACEHOLDER = "claim-name-placeholder"
RESERVED_PLACEHOLDERS = (POD_NAME_PLACEHOLDER, CLAIM_NAME_PLACEHOLDER)


# =============================================================================
# Volume Names and Mount Paths
# =============================================================================

ELASTICSEARCH_DATA_VOLUME_NAME = "elasticsearch-data"
ELASTICSEARCH_DATA_MOUNT_PATH = "/usr/share/elasticsearch/data"

ELASTICSEARCH_LOGS_VOLUME_NAME = "elasticsearch-logs"
ELASTICSEARCH_LOGS_MOUNT_PATH = "/usr/share/elasticsearch/logs"

XPACK_FILE_REALM_VOLUME_NAME = "elastic-internal-xpack-file-realm"
XPACK_FILE_REALM_MOUNT_PATH = "/mnt/elastic-internal/xpack-file-realm"

UNICAST_HOSTS_VOLUME_NAME = "elastic-internal-unicast-hosts"
UNICAST_HOSTS_MOUNT_PATH = "/mnt/elastic-internal/unicast-hosts"

PROBE_USER_VOLUME_NAME = "elastic-internal-probe-user"
PROBE_USER_MOUNT_PATH = "/mnt/elastic-internal/probe-user"

TRANSPORT_CERTIFICATES_VOLUME_NAME = "elastic-internal-transport-certificates"
TRANSPORT_CERTIFICATES_MOUNT_PATH = "/mnt/elastic-internal/transport-certificates"

HTTP_CERTIFICATES_VOLUME_NAME = "elastic-internal-http-certificates"
HTTP_CERTIFICATES_MOUNT_PATH = "/usr/share/elasticsearch/config/http-certs"

SCRIPTS_VOLUME_NAME = "elastic-internal-scripts"
SCRIPTS_MOUNT_PATH = "/mnt/elastic-internal/scripts"

CONFIG_VOLUME_NAME = "elastic-internal-elasticsearch-config"
CONFIG_MOUNT_PATH = "/mnt/elastic-internal/elasticsearch-config"

# Shared between the prepare-fs init container and the main container
CONFIG_LOCAL_VOLUME_NAME = "elastic-internal-elasticsearch-config-local"
CONFIG_LOCAL_MOUNT_PATH = "/usr/share/elasticsearch/config"
PLUGINS_LOCAL_VOLUME_NAME = "elastic-internal-elasticsearch-plugins-local"
PLUGINS_LOCAL_MOUNT_PATH = "/usr/share/elasticsearch/plugins"
BIN_LOCAL_VOLUME_NAME = "elastic-internal-elasticsearch-bin-local"
BIN_LOCAL_MOUNT_PATH = "/usr/share/elasticsearch/bin"

# Where prepare-fs sees the shared volumes while populating them
INIT_CONTAINER_SHARED_MOUNT_ROOT = "/mnt/elastic-internal/local"

PROBE_USER_NAME = "elastic-internal-probe"


# =============================================================================
# Volume Descriptors
# =============================================================================

@dataclass(frozen=True)
class SecretVolume:
    """
    A secret mounted read-only in the Elasticsearch container.

    ``items`` restricts the projected keys (each key is mounted under its own name).
    """
    secret_name: str
    name: str
    mount_path: str
    items: Optional[Tuple[str, ...]] = None
    default_mode: Optional[int] = None

    def volume(self) -> client.V1Volume:
        items = None
        if self.items is not None:
            items = [client.V1KeyToPath(key=key, path=key) for key in self.items]
        return client.V1Volume(
            name=self.name,
            secret=client.V1SecretVolumeSource(
                secret_name=self.secret_name,
                items=items,
                default_mode=self.default_mode
            )
        )

    def volume_mount(self) -> client.V1VolumeMount:
        return client.V1VolumeMount(name=self.name, mount_path=self.mount_path, read_only=True)


@dataclass(frozen=True)
class ConfigMapVolume:
    """A config map mounted read-only in the Elasticsearch container."""
    config_map_name: str
    name: str
    mount_path: str
    default_mode: Optional[int] = None

    def volume(self) -> client.V1Volume:
        return client.V1Volume(
            name=self.name,
            config_map=client.V1ConfigMapVolumeSource(
                name=self.config_map_name,
                default_mode=self.default_mode
            )
        )

    def volume_mount(self) -> client.V1VolumeMount:
        return client.V1VolumeMount(name=self.name, mount_path=self.mount_path, read_only=True)


@dataclass(frozen=True)
class EmptyDirVolume:
    """Scratch space living as long as the pod."""
    name: str
    mount_path: str

    def volume(self) -> client.V1Volume:
        return client.V1Volume(name=self.name, empty_dir=client.V1EmptyDirVolumeSource())

    def volume_mount(self) -> client.V1VolumeMount:
        return client.V1VolumeMount(name=self.name, mount_path=self.mount_path)


DEFAULT_LOGS_VOLUME = EmptyDirVolume(ELASTICSEARCH_LOGS_VOLUME_NAME, ELASTICSEARCH_LOGS_MOUNT_PATH)

PLUGIN_VOLUMES = (
    EmptyDirVolume(CONFIG_LOCAL_VOLUME_NAME, CONFIG_LOCAL_MOUNT_PATH),
    EmptyDirVolume(PLUGINS_LOCAL_VOLUME_NAME, PLUGINS_LOCAL_MOUNT_PATH),
    EmptyDirVolume(BIN_LOCAL_VOLUME_NAME, BIN_LOCAL_MOUNT_PATH),
)


def default_data_volume_mount() -> client.V1VolumeMount:
    # The volume itself comes from the data volume claim template
    return client.V1VolumeMount(
        name=ELASTICSEARCH_DATA_VOLUME_NAME,
        mount_path=ELASTICSEARCH_DATA_MOUNT_PATH
    )


# =============================================================================
# Cluster-scoped Volumes (resolvable at generation time)
# =============================================================================

def users_secret_volume(cluster_name: str) -> SecretVolume:
    """File realm users and roles, shared by every node of the cluster."""
    return SecretVolume(
        secret_name=xpack_file_realm_secret_name(cluster_name),
        name=XPACK_FILE_REALM_VOLUME_NAME,
        mount_path=XPACK_FILE_REALM_MOUNT_PATH
    )


def unicast_hosts_volume(cluster_name: str) -> ConfigMapVolume:
    """Seed hosts file consumed by the file-based discovery provider."""
    return ConfigMapVolume(
        config_map_name=unicast_hosts_config_map_name(cluster_name),
        name=UNICAST_HOSTS_VOLUME_NAME,
        mount_path=UNICAST_HOSTS_MOUNT_PATH
    )


def probe_user_volume(cluster_name: str, probe_user: str = PROBE_USER_NAME) -> SecretVolume:
    """Only the probe user password out of the internal users secret."""
    return SecretVolume(
        secret_name=internal_users_secret_name(cluster_name),
        name=PROBE_USER_VOLUME_NAME,
        mount_path=PROBE_USER_MOUNT_PATH,
        items=(probe_user,)
    )


def http_certificates_volume(cluster_name: str) -> SecretVolume:
    return SecretVolume(
        secret_name=http_certs_internal_secret_name(cluster_name),
        name=HTTP_CERTIFICATES_VOLUME_NAME,
        mount_path=HTTP_CERTIFICATES_MOUNT_PATH
    )


def scripts_volume(cluster_name: str) -> ConfigMapVolume:
    return ConfigMapVolume(
        config_map_name=scripts_config_map_name(cluster_name),
        name=SCRIPTS_VOLUME_NAME,
        mount_path=SCRIPTS_MOUNT_PATH,
        default_mode=0o755
    )


# =============================================================================
# Pod-scoped Volumes (placeholder until the pod has a name)
# =============================================================================

def transport_certificates_volume(pod_name: str = POD_NAME_PLACEHOLDER) -> SecretVolume:
    return SecretVolume(
        secret_name=transport_certs_secret_name(pod_name),
        name=TRANSPORT_CERTIFICATES_VOLUME_NAME,
        mount_path=TRANSPORT_CERTIFICATES_MOUNT_PATH
    )


def config_secret_volume(pod_name: str = POD_NAME_PLACEHOLDER) -> SecretVolume:
    return SecretVolume(
        secret_name=config_secret_name(pod_name),
        name=CONFIG_VOLUME_NAME,
        mount_path=CONFIG_MOUNT_PATH
    )


def claim_volumes(claim_templates: Iterable[client.V1PersistentVolumeClaim]) -> List[client.V1Volume]:
    """
    Create one volume per volume claim template.

    The claim is not bound yet: every volume references CLAIM_NAME_PLACEHOLDER.
    """
    volumes = []
    for claim_template in claim_templates:
        volumes.append(
            client.V1Volume(
                name=claim_template.metadata.name,
                persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(
                    claim_name=CLAIM_NAME_PLACEHOLDER
                )
            )
        )
    return volumes


# =============================================================================
# Placeholder Resolution
# =============================================================================

def find_placeholders(obj: Any) -> List[str]:
    """
    List the paths of every reserved token occurrence in a Kubernetes object.

    Args:
        obj: Kubernetes model (pod, template, volume...) or plain structure

    Returns:
        Paths such as "spec.volumes[3].secret.secretName"
    """
    data = client.ApiClient().sanitize_for_serialization(obj)
    found: List[str] = []

    def walk(value: Any, path: str) -> None:
        if isinstance(value, dict):
            for key in sorted(value):
                walk(value[key], f"{path}.{key}" if path else str(key))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                walk(item, f"{path}[{index}]")
        elif isinstance(value, str):
            if any(token in value for token in RESERVED_PLACEHOLDERS):
                found.append(path)

    walk(data, "")
    return found


def resolve_placeholders(
    pod: client.V1Pod,
    claim_names: Optional[Dict[str, str]] = None
) -> client.V1Pod:
    """
    Replace reserved tokens with concrete names right before pod creation.

    The pod must already be materialized (it has a name). The input is left
    untouched; a resolved copy is returned.

    Args:
        pod: Materialized pod
        claim_names: Claim name per volume name, for claims already bound to
            another pod generation. Defaults to "{volume}-{pod}".

    Returns:
        Resolved copy of the pod

    Raises:
        PlaceholderResolutionError: If the pod has no name, or if a token
            remains anywhere in the resolved pod
    """
    claim_names = claim_names or {}
    resolved = copy.deepcopy(pod)
    name = resolved.metadata.name if resolved.metadata else None
    if not name:
        raise PlaceholderResolutionError("Cannot resolve placeholders of a pod without a name")

    for volume in (resolved.spec.volumes or []):
        if volume.secret is not None and volume.secret.secret_name:
            volume.secret.secret_name = volume.secret.secret_name.replace(POD_NAME_PLACEHOLDER, name)
        if volume.config_map is not None and volume.config_map.name:
            volume.config_map.name = volume.config_map.name.replace(POD_NAME_PLACEHOLDER, name)
        claim = volume.persistent_volume_claim
        if claim is not None and claim.claim_name == CLAIM_NAME_PLACEHOLDER:
            claim.claim_name = claim_names.get(volume.name) or persistent_volume_claim_name(volume.name, name)

    remaining = find_placeholders(resolved)
    if remaining:
        raise PlaceholderResolutionError(
            f"Placeholders left in pod {name}: {', '.join(remaining)}"
        )

    logger.debug(f"[PODSPEC:VOLUMES] Resolved placeholders for pod {name}")
    return resolved
