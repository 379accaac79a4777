"""
Pod materialization.

Turns a PodSpecContext into the concrete pod handed to the Kubernetes API
client, once the reconciler decided the pod must be created. Placeholders are
still in place at this point: resolve_placeholders() fixes them right before
creation.
"""

import copy

from kubernetes import client

from ...schemas import ClusterSpec
from ...utils.resource_naming import pod_name
from .labels import set_template_hash_label
from .params import PodSpecContext


def new_pod(es: ClusterSpec, pod_spec: PodSpecContext) -> client.V1Pod:
    """
    Build a pod from a PodSpecContext.

    The template is deep-copied: mutating the returned pod never affects the
    context, which may be compared against other pods afterwards.

    Args:
        es: Cluster the pod belongs to
        pod_spec: Context of the replica to create

    Returns:
        V1Pod with name, namespace, hostname and subdomain set
    """
    template = copy.deepcopy(pod_spec.pod_template)
    metadata = template.metadata or client.V1ObjectMeta()
    spec = template.spec

    # label the pod with a hash of its template, for comparison purpose,
    # before it gets assigned a name
    metadata.labels = set_template_hash_label(metadata.labels, template)

    metadata.name = pod_name(es.name, pod_spec.node_group_identity, pod_spec.ordinal)
    metadata.namespace = es.namespace

    # set hostname and subdomain based on pod and cluster names
    if not spec.hostname:
        spec.hostname = metadata.name
    if not spec.subdomain:
        spec.subdomain = es.name

    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=metadata,
        spec=spec
    )
