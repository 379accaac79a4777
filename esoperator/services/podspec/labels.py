"""
Labels and content hashes for Elasticsearch pods.

Two labels carry change detection:

- The template hash: a digest of the whole pod template, in a canonical JSON
  form (API field names, sorted keys, unset and empty fields dropped). Equal templates
  get equal hashes regardless of dict ordering; the reconciler compares it
  against the label of live pods.
- The config checksum: a digest of out-of-band version markers (keystore
  content version) that are not visible in the template otherwise. Since it
  is itself a label, it also changes the template hash.
"""

import hashlib
import json
from typing import Any, Dict, Iterable, Optional

from kubernetes import client

from ...utils.version import Version
from .es_config import ElasticsearchSettings

TYPE_LABEL_NAME = "common.k8s.elastic.co/type"
TYPE_LABEL_VALUE = "elasticsearch"

CLUSTER_NAME_LABEL_NAME = "elasticsearch.k8s.elastic.co/cluster-name"
VERSION_LABEL_NAME = "elasticsearch.k8s.elastic.co/version"

NODE_MASTER_LABEL_NAME = "elasticsearch.k8s.elastic.co/node-master"
NODE_DATA_LABEL_NAME = "elasticsearch.k8s.elastic.co/node-data"
NODE_INGEST_LABEL_NAME = "elasticsearch.k8s.elastic.co/node-ingest"
NODE_ML_LABEL_NAME = "elasticsearch.k8s.elastic.co/node-ml"

CONFIG_CHECKSUM_LABEL_NAME = "elasticsearch.k8s.elastic.co/config-checksum"
TEMPLATE_HASH_LABEL_NAME = "common.k8s.elastic.co/template-hash"


def _bool_label(value: bool) -> str:
    return "true" if value else "false"


def new_pod_labels(cluster_name: str, version: Version, settings: ElasticsearchSettings) -> Dict[str, str]:
    """Labels identifying the cluster, version and roles of a node."""
    return {
        TYPE_LABEL_NAME: TYPE_LABEL_VALUE,
        CLUSTER_NAME_LABEL_NAME: cluster_name,
        VERSION_LABEL_NAME: str(version),
        NODE_MASTER_LABEL_NAME: _bool_label(settings.master),
        NODE_DATA_LABEL_NAME: _bool_label(settings.data),
        NODE_INGEST_LABEL_NAME: _bool_label(settings.ingest),
        NODE_ML_LABEL_NAME: _bool_label(settings.ml),
    }


def config_checksum(version_marker: str) -> str:
    """
    One-way digest of an opaque version marker.

    SHA-224 keeps the hex digest (56 chars) within the 63 chars label limit.
    """
    return hashlib.sha224(version_marker.encode("utf-8")).hexdigest()


def _prune(value: Any) -> Any:
    # empty maps and lists mean the same as unset fields
    if isinstance(value, dict):
        pruned = {key: _prune(item) for key, item in value.items()}
        return {key: item for key, item in pruned.items() if item is not None and item != {} and item != []}
    if isinstance(value, list):
        return [_prune(item) for item in value]
    return value


def canonical_data(obj: Any, ignored_labels: Iterable[str] = ()) -> Any:
    """
    Plain form of a Kubernetes object: API field names, unset and empty
    fields dropped, ``ignored_labels`` removed from the metadata labels.
    """
    data = client.ApiClient().sanitize_for_serialization(obj)
    ignored = set(ignored_labels)
    if ignored and isinstance(data, dict):
        metadata = data.get("metadata") or {}
        labels = metadata.get("labels")
        if labels:
            data["metadata"] = {
                **metadata,
                "labels": {k: v for k, v in labels.items() if k not in ignored},
            }
    return _prune(data)


def canonical_json(obj: Any, ignored_labels: Iterable[str] = ()) -> str:
    """Serialize a Kubernetes object to JSON with a stable field ordering."""
    return json.dumps(
        canonical_data(obj, ignored_labels), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def hash_template(template: client.V1PodTemplateSpec) -> str:
    """
    Hash a pod template, ignoring its own template hash label.

    A template without labels and the same template carrying only its hash
    label give the same digest, so the label can be recomputed on a labelled template.

    Returns:
        SHA-224 hex digest
    """
    canonical = canonical_json(template, ignored_labels=(TEMPLATE_HASH_LABEL_NAME,))
    return hashlib.sha224(canonical.encode("utf-8")).hexdigest()


def set_template_hash_label(
    labels: Optional[Dict[str, str]],
    template: client.V1PodTemplateSpec
) -> Dict[str, str]:
    """Return a copy of ``labels`` carrying the hash of ``template``."""
    labelled = dict(labels or {})
    labelled[TEMPLATE_HASH_LABEL_NAME] = hash_template(template)
    return labelled


def get_template_hash(obj: Any) -> Optional[str]:
    """Read the template hash label of a pod or pod template."""
    metadata = getattr(obj, "metadata", None)
    if metadata is None or not metadata.labels:
        return None
    return metadata.labels.get(TEMPLATE_HASH_LABEL_NAME)
