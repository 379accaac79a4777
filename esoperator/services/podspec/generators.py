"""
Pluggable generators for environment variables, configuration and init containers.

The pod spec generator only depends on the three contracts below. Any callable
with the same signature works as well, which keeps tests free to use fakes.
Default implementations are provided for the supported Elasticsearch versions;
use new_default_generators() to pick the ones matching a cluster.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from kubernetes import client
from kubernetes.utils import parse_quantity

from ...config import Settings, get_settings
from ...errors import ConfigValidationError, InitContainerError
from ...schemas import ClusterSpec
from ...utils.version import Version, parse_version
from .defaults import ELASTICSEARCH_CONTAINER_NAME
from .es_config import CanonicalConfig
from .params import NewPodSpecParams
from .volumes import (
    BIN_LOCAL_VOLUME_NAME,
    CONFIG_MOUNT_PATH,
    CONFIG_LOCAL_VOLUME_NAME,
    ELASTICSEARCH_DATA_MOUNT_PATH,
    ELASTICSEARCH_LOGS_MOUNT_PATH,
    HTTP_CERTIFICATES_MOUNT_PATH,
    INIT_CONTAINER_SHARED_MOUNT_ROOT,
    PLUGINS_LOCAL_VOLUME_NAME,
    PROBE_USER_MOUNT_PATH,
    TRANSPORT_CERTIFICATES_MOUNT_PATH,
    UNICAST_HOSTS_MOUNT_PATH,
    XPACK_FILE_REALM_MOUNT_PATH,
    SecretVolume,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Contracts
# =============================================================================

class EnvGenerator(ABC):
    """Environment variables of the Elasticsearch container."""

    @abstractmethod
    def __call__(self, params: NewPodSpecParams) -> List[client.V1EnvVar]:
        """
        Args:
            params: Parameters of the node being built

        Returns:
            Ordered environment variables
        """
        pass


class ConfigGenerator(ABC):
    """elasticsearch.yml content of a node."""

    @abstractmethod
    def __call__(self, cluster_name: str, config: Dict[str, Any]) -> CanonicalConfig:
        """
        Args:
            cluster_name: Name of the cluster
            config: Node group configuration overrides (possibly empty)

        Returns:
            Canonical configuration

        Raises:
            ConfigValidationError: If the overrides are invalid
        """
        pass


class InitContainerGenerator(ABC):
    """Init containers preparing the node before Elasticsearch starts."""

    @abstractmethod
    def __call__(
        self,
        image: str,
        set_vm_max_map_count: Optional[bool],
        transport_certificates: SecretVolume,
        cluster_name: str
    ) -> List[client.V1Container]:
        """
        Args:
            image: Resolved Elasticsearch image
            set_vm_max_map_count: Host tuning flag from the cluster spec (None = default)
            transport_certificates: Transport certificates volume (pod name placeholder)
            cluster_name: Name of the cluster

        Returns:
            Ordered init containers

        Raises:
            InitContainerError: If the image or the flags are not supported
        """
        pass


# =============================================================================
# Environment
# =============================================================================

def quantity_to_megabytes(quantity: str) -> int:
    """Megabyte value of a Kubernetes quantity ("2Gi" -> 2048)."""
    return int(parse_quantity(quantity)) // 1024 // 1024


class DefaultEnvGenerator(EnvGenerator):
    """
    Node identity from the downward API, probe credentials and JVM heap.

    The heap is half the container memory: the limit if set, else the request,
    else the default memory request. A user-declared ES_JAVA_OPTS wins since
    template env vars take precedence.
    """

    def __call__(self, params: NewPodSpecParams) -> List[client.V1EnvVar]:
        protocol = "https" if params.cluster.http.tls_enabled else "http"
        heap = max(quantity_to_megabytes(self._memory(params)) // 2, 1)
        return [
            client.V1EnvVar(
                name="NODE_NAME",
                value_from=client.V1EnvVarSource(
                    field_ref=client.V1ObjectFieldSelector(api_version="v1", field_path="metadata.name")
                )
            ),
            client.V1EnvVar(
                name="POD_IP",
                value_from=client.V1EnvVarSource(
                    field_ref=client.V1ObjectFieldSelector(api_version="v1", field_path="status.podIP")
                )
            ),
            client.V1EnvVar(name="PROBE_USERNAME", value=params.probe_user),
            client.V1EnvVar(name="PROBE_PASSWORD_FILE", value=f"{PROBE_USER_MOUNT_PATH}/{params.probe_user}"),
            client.V1EnvVar(name="READINESS_PROBE_PROTOCOL", value=protocol),
            client.V1EnvVar(name="ES_JAVA_OPTS", value=f"-Xms{heap}M -Xmx{heap}M"),
        ]

    @staticmethod
    def _memory(params: NewPodSpecParams) -> str:
        template = params.node_group.pod_template
        if template is not None and template.spec is not None:
            for container in (template.spec.containers or []):
                if container.name != ELASTICSEARCH_CONTAINER_NAME or container.resources is None:
                    continue
                for source in (container.resources.limits, container.resources.requests):
                    if source and source.get("memory"):
                        return source["memory"]
        return params.effective_settings.default_memory_request


# =============================================================================
# Configuration
# =============================================================================

VERSION_7 = Version(7, 0, 0)

# Prefixes of settings managed by the operator, users cannot override them
RESERVED_SETTINGS = (
    "cluster.name",
    "node.name",
    "network.host",
    "network.publish_host",
    "path.data",
    "path.logs",
    "discovery.zen.hosts_provider",
    "discovery.seed_providers",
    "discovery.zen.ping.unicast.hosts",
    "discovery.seed_hosts",
    "xpack.security.authc.realms",
    "xpack.security.transport.ssl",
    "xpack.security.http.ssl.key",
    "xpack.security.http.ssl.certificate",
    "xpack.security.http.ssl.certificate_authorities",
)


def _is_reserved(key: str) -> bool:
    return any(key == reserved or key.startswith(f"{reserved}.") for reserved in RESERVED_SETTINGS)


class DefaultConfigGenerator(ConfigGenerator):
    """
    Operator-managed settings merged with the node group overrides.

    Discovery and file realm settings differ between 6.x and 7.x.
    """

    def __init__(self, version: Version, http_tls_enabled: bool = True):
        self.version = version
        self.http_tls_enabled = http_tls_enabled

    def base_settings(self, cluster_name: str) -> Dict[str, Any]:
        transport = TRANSPORT_CERTIFICATES_MOUNT_PATH
        settings: Dict[str, Any] = {
            "cluster.name": cluster_name,
            "node.name": "${NODE_NAME}",
            "network.host": "0.0.0.0",
            "network.publish_host": "${POD_IP}",
            "path.data": ELASTICSEARCH_DATA_MOUNT_PATH,
            "path.logs": ELASTICSEARCH_LOGS_MOUNT_PATH,
            "xpack.security.enabled": True,
            "xpack.security.authc.reserved_realm.enabled": False,
            "xpack.security.transport.ssl.enabled": True,
            "xpack.security.transport.ssl.verification_mode": "certificate",
            "xpack.security.transport.ssl.key": f"{transport}/transport.tls.key",
            "xpack.security.transport.ssl.certificate": f"{transport}/transport.tls.crt",
            "xpack.security.transport.ssl.certificate_authorities": [f"{transport}/ca.crt"],
            "xpack.security.http.ssl.enabled": self.http_tls_enabled,
        }
        if self.http_tls_enabled:
            settings.update({
                "xpack.security.http.ssl.key": f"{HTTP_CERTIFICATES_MOUNT_PATH}/tls.key",
                "xpack.security.http.ssl.certificate": f"{HTTP_CERTIFICATES_MOUNT_PATH}/tls.crt",
                "xpack.security.http.ssl.certificate_authorities": [f"{HTTP_CERTIFICATES_MOUNT_PATH}/ca.crt"],
            })

        if self.version.is_same_or_after(VERSION_7):
            settings["discovery.seed_providers"] = "file"
            settings["xpack.security.authc.realms.file.file1.order"] = -100
            settings["xpack.security.authc.realms.native.native1.order"] = -99
        else:
            settings["discovery.zen.hosts_provider"] = "file"
            settings["xpack.security.authc.realms.file1.type"] = "file"
            settings["xpack.security.authc.realms.file1.order"] = -100
            settings["xpack.security.authc.realms.native1.type"] = "native"
            settings["xpack.security.authc.realms.native1.order"] = -99
        return settings

    def __call__(self, cluster_name: str, config: Dict[str, Any]) -> CanonicalConfig:
        user_config = CanonicalConfig(config)
        forbidden = [key for key in user_config.flat_keys() if _is_reserved(key)]
        if forbidden:
            raise ConfigValidationError(
                f"Settings managed by the operator cannot be overridden: {', '.join(forbidden)}"
            )
        return CanonicalConfig.merge(CanonicalConfig(self.base_settings(cluster_name)), user_config)


# =============================================================================
# Init Containers
# =============================================================================

PREPARE_FS_CONTAINER_NAME = "elastic-internal-init-filesystem"
OS_SETTINGS_CONTAINER_NAME = "elastic-internal-init-os-settings"

# Loose image reference check: [registry[:port]/]name[:tag][@digest]
_IMAGE_PATTERN = re.compile(
    r"^[a-z0-9]+(?:[._-][a-z0-9]+)*(?::[0-9]+)?"
    r"(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)*"
    r"(?::[A-Za-z0-9_][A-Za-z0-9_.-]{0,127})?"
    r"(?:@[A-Za-z0-9]+:[A-Fa-f0-9]+)?$"
)


def generate_prepare_fs_script(transport_certificates_path: str) -> str:
    """
    Generate the script copying the image's config, plugins and bin directories
    into the shared volumes, and linking the transport certificates.
    """
    root = INIT_CONTAINER_SHARED_MOUNT_ROOT
    return f'''#!/usr/bin/env bash
set -eu

echo "[PREPARE-FS] Copying config, plugins and bin to shared volumes"
for dir in config plugins bin; do
    if [ -z "$(ls -A {root}/$dir)" ]; then
        cp -av /usr/share/elasticsearch/$dir/. {root}/$dir/
    fi
done

echo "[PREPARE-FS] Linking operator-managed files into the config directory"
ln -sf {CONFIG_MOUNT_PATH}/elasticsearch.yml {root}/config/elasticsearch.yml
ln -sf {UNICAST_HOSTS_MOUNT_PATH}/unicast_hosts.txt {root}/config/unicast_hosts.txt
ln -sf {XPACK_FILE_REALM_MOUNT_PATH}/users {root}/config/users
ln -sf {XPACK_FILE_REALM_MOUNT_PATH}/users_roles {root}/config/users_roles
ln -sf {transport_certificates_path} {root}/config/transport-certs

echo "[PREPARE-FS] Done"
'''


class DefaultInitContainerGenerator(InitContainerGenerator):
    """
    Filesystem preparation, plus an optional privileged container raising
    vm.max_map_count on the host (required by Elasticsearch mmapfs).
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else get_settings()

    def __call__(
        self,
        image: str,
        set_vm_max_map_count: Optional[bool],
        transport_certificates: SecretVolume,
        cluster_name: str
    ) -> List[client.V1Container]:
        if not image or not _IMAGE_PATTERN.match(image):
            raise InitContainerError(f"Invalid image reference {image!r} for cluster {cluster_name}")
        if set_vm_max_map_count is not None and not isinstance(set_vm_max_map_count, bool):
            raise InitContainerError(
                f"set_vm_max_map_count must be a boolean, got {set_vm_max_map_count!r}"
            )

        if set_vm_max_map_count is None:
            set_vm_max_map_count = self.settings.default_set_vm_max_map_count

        containers = []
        if set_vm_max_map_count:
            containers.append(self.os_settings_container(image))
        containers.append(self.prepare_fs_container(image, transport_certificates))
        return containers

    def os_settings_container(self, image: str) -> client.V1Container:
        return client.V1Container(
            name=OS_SETTINGS_CONTAINER_NAME,
            image=image,
            image_pull_policy="IfNotPresent",
            command=["sysctl", "-w", f"vm.max_map_count={self.settings.vm_max_map_count}"],
            security_context=client.V1SecurityContext(privileged=True)
        )

    def prepare_fs_container(self, image: str, transport_certificates: SecretVolume) -> client.V1Container:
        root = INIT_CONTAINER_SHARED_MOUNT_ROOT
        return client.V1Container(
            name=PREPARE_FS_CONTAINER_NAME,
            image=image,
            image_pull_policy="IfNotPresent",
            command=["bash", "-c", generate_prepare_fs_script(transport_certificates.mount_path)],
            security_context=client.V1SecurityContext(privileged=False),
            volume_mounts=[
                client.V1VolumeMount(name=CONFIG_LOCAL_VOLUME_NAME, mount_path=f"{root}/config"),
                client.V1VolumeMount(name=PLUGINS_LOCAL_VOLUME_NAME, mount_path=f"{root}/plugins"),
                client.V1VolumeMount(name=BIN_LOCAL_VOLUME_NAME, mount_path=f"{root}/bin"),
                transport_certificates.volume_mount(),
            ]
        )


# =============================================================================
# Selection
# =============================================================================

@dataclass(frozen=True)
class Generators:
    env: EnvGenerator
    config: ConfigGenerator
    init_containers: InitContainerGenerator


def new_default_generators(cluster: ClusterSpec, settings: Optional[Settings] = None) -> Generators:
    """
    Pick the default generators matching the cluster version.

    Raises:
        VersionParseError: If the cluster version cannot be parsed
    """
    version = parse_version(cluster.version)
    logger.debug(f"[PODSPEC:GENERATORS] Using default generators for Elasticsearch {version}")
    return Generators(
        env=DefaultEnvGenerator(),
        config=DefaultConfigGenerator(version, http_tls_enabled=cluster.http.tls_enabled),
        init_containers=DefaultInitContainerGenerator(settings),
    )
