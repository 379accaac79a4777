"""
Expected Pod Specs

Computes the desired pod spec of every Elasticsearch node of a cluster. The
reconciler compares the resulting contexts against live pods (through their
template hash label) to decide what to create, keep or delete.

Generation is a pure function of its inputs:
- No API calls, no I/O, no shared state: safe to run for several clusters
  concurrently.
- Deterministic: identical inputs give identical templates and hashes.
- All-or-nothing: the first error aborts the whole cluster, so the reconciler
  never acts on a partial set of nodes.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client

from ...config import Settings
from ...errors import PodSpecGenerationError
from ...schemas import ClusterSpec
from ...utils.version import parse_version
from .builder import PodTemplateBuilder
from .defaults import (
    ELASTICSEARCH_CONTAINER_NAME,
    append_default_pvcs,
    default_affinity,
    default_container_ports,
    default_volume_claim_templates,
    new_readiness_probe,
)
from .es_config import CanonicalConfig
from .labels import CONFIG_CHECKSUM_LABEL_NAME, config_checksum, new_pod_labels
from .generators import new_default_generators
from .params import KeystoreResources, NewPodSpecParams, PodSpecContext, new_params_template
from .volumes import (
    DEFAULT_LOGS_VOLUME,
    PLUGIN_VOLUMES,
    SecretVolume,
    claim_volumes,
    config_secret_volume,
    default_data_volume_mount,
    http_certificates_volume,
    probe_user_volume,
    scripts_volume,
    transport_certificates_volume,
)

logger = logging.getLogger(__name__)

EnvVarsFn = Callable[[NewPodSpecParams], List[client.V1EnvVar]]
ESConfigFn = Callable[[str, Dict[str, Any]], CanonicalConfig]
InitContainersFn = Callable[[str, Optional[bool], SecretVolume, str], List[client.V1Container]]


def new_expected_pod_specs(
    cluster: ClusterSpec,
    params_template: NewPodSpecParams,
    new_environment_vars: EnvVarsFn,
    new_es_config: ESConfigFn,
    new_init_containers: InitContainersFn
) -> List[PodSpecContext]:
    """
    Create one PodSpecContext per Elasticsearch node of the cluster.

    Contexts come in node group declaration order, then replica ordinal order.

    Args:
        cluster: Desired cluster state
        params_template: Cluster-wide parameters (volumes, keystore, settings)
        new_environment_vars: Environment variables generator
        new_es_config: Configuration generator
        new_init_containers: Init containers generator

    Returns:
        One context per replica (sum of the node group counts)

    Raises:
        PodSpecGenerationError: On the first failing replica, wrapping the
            original error
    """
    settings = params_template.effective_settings
    pod_specs: List[PodSpecContext] = []

    logger.info(
        f"[PODSPEC] Generating {cluster.node_count()} pod specs for cluster "
        f"{cluster.namespace}/{cluster.name} ({len(cluster.node_groups)} node groups)"
    )
    if cluster.secure_settings_secret and params_template.keystore_resources is None:
        logger.warning(
            f"[PODSPEC] Cluster {cluster.name} declares secure settings secret "
            f"{cluster.secure_settings_secret} but no keystore resources were provided, "
            "pods will start without a keystore"
        )

    for index, node_group in enumerate(cluster.node_groups):
        # add default PVCs to the node group, user-declared claims come first
        template_spec = node_group.pod_template.spec if node_group.pod_template else None
        node_group = node_group.model_copy(update={
            "volume_claim_templates": append_default_pvcs(
                node_group.volume_claim_templates,
                template_spec,
                default_volume_claim_templates(settings)
            )
        })
        identity = node_group.identity(index)

        for ordinal in range(node_group.count):
            params = params_template.for_node(cluster, node_group)
            try:
                pod_spec = pod_spec_context(params, new_environment_vars, new_es_config, new_init_containers)
            except Exception as e:
                logger.error(
                    f"[PODSPEC] ❌ Failed to generate pod spec for cluster {cluster.name}, "
                    f"node group {identity}, replica {ordinal}: {e}"
                )
                raise PodSpecGenerationError(cluster.name, identity, ordinal, e) from e

            pod_spec.node_group_index = index
            pod_spec.ordinal = ordinal
            pod_specs.append(pod_spec)
            logger.debug(
                f"[PODSPEC] Node group {identity} replica {ordinal}: template hash {pod_spec.template_hash}"
            )

    return pod_specs


def pod_spec_context(
    p: NewPodSpecParams,
    new_environment_vars: EnvVarsFn,
    new_es_config: ESConfigFn,
    new_init_containers: InitContainersFn
) -> PodSpecContext:
    """
    Build the PodSpecContext of a single Elasticsearch node.

    Raises:
        VersionParseError: If the cluster version is invalid
        ConfigValidationError: If the configuration generator rejects the overrides
        InitContainerError: If the init containers generator fails
    """
    es = p.cluster
    settings = p.effective_settings

    # setup volumes
    probe_secret = probe_user_volume(es.name, p.probe_user)
    http_certificates = http_certificates_volume(es.name)

    # A few secret volumes depend on the pod name, which does not exist yet.
    # They reference a placeholder instead: volume mounts are already correct,
    # secret names are fixed right before pod creation.
    transport_certificates = transport_certificates_volume()
    config_volume = config_secret_volume()

    # future volumes from PVCs, not bound to a claim yet
    persistent_volumes = claim_volumes(p.node_group.volume_claim_templates)

    # build on top of the user-provided pod template
    builder = (
        PodTemplateBuilder(p.node_group.pod_template, ELASTICSEARCH_CONTAINER_NAME)
        .with_docker_image(es.image, settings.default_image(es.version))
        .with_memory_request(settings.default_memory_request)
        .with_termination_grace_period(settings.termination_grace_period_seconds)
        .with_ports(default_container_ports())
        .with_readiness_probe(new_readiness_probe())
        .with_affinity(default_affinity(es.name))
        .with_env(*new_environment_vars(p))
    )

    init_containers = new_init_containers(
        builder.container.image,
        es.set_vm_max_map_count,
        transport_certificates,
        es.name
    )

    scripts = scripts_volume(es.name)

    builder = (
        builder
        .with_volumes(
            # includes the data volume, unless the pod template overrides it
            *persistent_volumes,
            *[v.volume() for v in PLUGIN_VOLUMES],
            DEFAULT_LOGS_VOLUME.volume(),
            p.users_secret_volume.volume(),
            p.unicast_hosts_volume.volume(),
            probe_secret.volume(),
            transport_certificates.volume(),
            http_certificates.volume(),
            scripts.volume(),
            config_volume.volume(),
        )
        .with_volume_mounts(
            *[v.volume_mount() for v in PLUGIN_VOLUMES],
            default_data_volume_mount(),
            DEFAULT_LOGS_VOLUME.volume_mount(),
            p.users_secret_volume.volume_mount(),
            p.unicast_hosts_volume.volume_mount(),
            probe_secret.volume_mount(),
            transport_certificates.volume_mount(),
            http_certificates.volume_mount(),
            scripts.volume_mount(),
            config_volume.volume_mount(),
        )
    )

    keystore = p.keystore_resources
    if keystore is not None:
        builder = builder.with_volumes(keystore.volume).with_init_containers(keystore.init_container)

    # generated init containers run before the keystore one
    builder = builder.with_init_containers(*init_containers).with_init_container_defaults()

    # generate the configuration, the volume propagating it is created later on
    es_config = new_es_config(es.name, dict(p.node_group.config or {}))
    unpacked_config = es_config.unpack()

    es_version = parse_version(es.version)
    builder = builder.with_labels(new_pod_labels(es.name, es_version, unpacked_config))
    if keystore is not None:
        # keystore content is not visible in the template, its version is
        builder = builder.with_labels(
            {CONFIG_CHECKSUM_LABEL_NAME: config_checksum(keystore.version)}, overwrite=True
        )

    builder = builder.with_template_hash()

    return PodSpecContext(
        node_group=p.node_group,
        pod_template=builder.pod_template,
        config=es_config,
    )


def new_default_expected_pod_specs(
    cluster: ClusterSpec,
    keystore_resources: Optional[KeystoreResources] = None,
    settings: Optional[Settings] = None
) -> List[PodSpecContext]:
    """
    Generate the pod specs of a cluster with the default generators for its version.

    Raises:
        VersionParseError: If the cluster version cannot be parsed
        PodSpecGenerationError: If a replica fails to generate
    """
    generators = new_default_generators(cluster, settings)
    return new_expected_pod_specs(
        cluster,
        new_params_template(cluster, keystore_resources=keystore_resources, settings=settings),
        generators.env,
        generators.config,
        generators.init_containers,
    )
