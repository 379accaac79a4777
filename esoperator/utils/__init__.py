"""Utility modules for the Elasticsearch pod spec generator."""

from .resource_naming import (
    es_resource_name,
    internal_users_secret_name,
    xpack_file_realm_secret_name,
    unicast_hosts_config_map_name,
    scripts_config_map_name,
    http_certs_internal_secret_name,
    transport_certs_secret_name,
    config_secret_name,
    persistent_volume_claim_name,
    pod_name,
)
from .version import Version, parse_version

__all__ = [
    "es_resource_name",
    "internal_users_secret_name",
    "xpack_file_realm_secret_name",
    "unicast_hosts_config_map_name",
    "scripts_config_map_name",
    "http_certs_internal_secret_name",
    "transport_certs_secret_name",
    "config_secret_name",
    "persistent_volume_claim_name",
    "pod_name",
    "Version",
    "parse_version",
]
