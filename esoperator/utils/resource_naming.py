"""
Resource naming utilities for Elasticsearch clusters.

Centralized functions for generating consistent identifiers across:
- Cluster-wide secrets and config maps (keyed by cluster name)
- Per-pod secrets (keyed by pod name)
- Persistent volume claims
- Pod names

All names must be DNS-1123 compliant: lowercase alphanumeric + hyphens,
63 characters at most for pod names and label values.
"""

import hashlib
from typing import Union

MAX_NAME_LENGTH = 63
TRUNCATION_DIGEST_LENGTH = 8

# Lowercase alphanumerics and hyphens, starting and ending with an alphanumeric
DNS_1123_LABEL_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"

ES_NAME_INFIX = "es"


def es_resource_name(cluster_name: str, suffix: str) -> str:
    """
    Get the name of a cluster-scoped resource.

    Examples:
        >>> es_resource_name("quickstart", "scripts")
        "quickstart-es-scripts"
    """
    return f"{cluster_name}-{ES_NAME_INFIX}-{suffix}"


def internal_users_secret_name(cluster_name: str) -> str:
    """Secret holding the operator-managed internal users (probe user included)."""
    return es_resource_name(cluster_name, "internal-users")


def xpack_file_realm_secret_name(cluster_name: str) -> str:
    """Secret holding the file realm (users, roles) mounted in every node."""
    return es_resource_name(cluster_name, "xpack-file-realm")


def unicast_hosts_config_map_name(cluster_name: str) -> str:
    return es_resource_name(cluster_name, "unicast-hosts")


def scripts_config_map_name(cluster_name: str) -> str:
    return es_resource_name(cluster_name, "scripts")


def http_certs_internal_secret_name(cluster_name: str) -> str:
    return es_resource_name(cluster_name, "http-certs-internal")


def transport_certs_secret_name(pod_name: str) -> str:
    """Per-pod transport certificates secret."""
    return f"{pod_name}-certs"


def config_secret_name(pod_name: str) -> str:
    """Per-pod elasticsearch.yml secret."""
    return f"{pod_name}-config"


def persistent_volume_claim_name(claim_template_name: str, pod_name: str) -> str:
    """
    Get the name of the claim bound to a pod for a volume claim template.

    Examples:
        >>> persistent_volume_claim_name("elasticsearch-data", "quickstart-es-default-0")
        "elasticsearch-data-quickstart-es-default-0"
    """
    return f"{claim_template_name}-{pod_name}"


def pod_name(cluster_name: str, node_group: Union[str, int], ordinal: int) -> str:
    """
    Get the pod name for a replica of a node group.

    Node groups without a name are identified by their position in the cluster spec.
    Long names are truncated, keeping the ordinal suffix, and a short digest of
    the full prefix is appended so that prefixes differing only past the cut
    still give distinct names.

    Examples:
        >>> pod_name("quickstart", "master", 2)
        "quickstart-es-master-2"
    """
    suffix = f"-{ordinal}"
    prefix = es_resource_name(cluster_name, str(node_group))
    if len(prefix) + len(suffix) > MAX_NAME_LENGTH:
        digest = hashlib.sha224(prefix.encode("utf-8")).hexdigest()[:TRUNCATION_DIGEST_LENGTH]
        keep = MAX_NAME_LENGTH - len(suffix) - len(digest) - 1
        prefix = f"{prefix[:keep].rstrip('-')}-{digest}"
    return f"{prefix}{suffix}"
