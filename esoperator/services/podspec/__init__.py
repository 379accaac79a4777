"""
Elasticsearch Pod Spec Generation

This module computes the desired pod specs of an Elasticsearch cluster:
- Expected pod specs: one PodSpecContext per replica of every node group
- PodTemplateBuilder: immutable builder merging the user template with defaults
- Generators: pluggable env vars / configuration / init containers
- Labels: template hash and config checksum used for change detection
- Volumes: placeholder-based volumes and their resolution before creation
- new_pod: materializes a context into a concrete pod

Two-phase naming:
1. Generated specs reference pod-scoped secrets and claims through reserved
   placeholders, so they can be compared with live pods without names.
2. resolve_placeholders() replaces them right before creation.

These are used by the reconciler, which owns every API call.
"""

from .builder import PodTemplateBuilder
from .es_config import CanonicalConfig, ElasticsearchSettings
from .expected import new_default_expected_pod_specs, new_expected_pod_specs, pod_spec_context
from .generators import (
    ConfigGenerator,
    DefaultConfigGenerator,
    DefaultEnvGenerator,
    DefaultInitContainerGenerator,
    EnvGenerator,
    Generators,
    InitContainerGenerator,
    new_default_generators,
)
from .labels import (
    CONFIG_CHECKSUM_LABEL_NAME,
    TEMPLATE_HASH_LABEL_NAME,
    config_checksum,
    get_template_hash,
    hash_template,
    new_pod_labels,
)
from .params import KeystoreResources, NewPodSpecParams, PodSpecContext, new_params_template
from .pod import new_pod
from .volumes import (
    CLAIM_NAME_PLACEHOLDER,
    POD_NAME_PLACEHOLDER,
    RESERVED_PLACEHOLDERS,
    ConfigMapVolume,
    SecretVolume,
    find_placeholders,
    resolve_placeholders,
)

__all__ = [
    # Generation
    "new_expected_pod_specs",
    "new_default_expected_pod_specs",
    "pod_spec_context",
    "PodSpecContext",
    "NewPodSpecParams",
    "KeystoreResources",
    "new_params_template",
    # Builder
    "PodTemplateBuilder",
    # Generators
    "EnvGenerator",
    "ConfigGenerator",
    "InitContainerGenerator",
    "DefaultEnvGenerator",
    "DefaultConfigGenerator",
    "DefaultInitContainerGenerator",
    "Generators",
    "new_default_generators",
    "CanonicalConfig",
    "ElasticsearchSettings",
    # Labels
    "TEMPLATE_HASH_LABEL_NAME",
    "CONFIG_CHECKSUM_LABEL_NAME",
    "hash_template",
    "get_template_hash",
    "config_checksum",
    "new_pod_labels",
    # Volumes
    "POD_NAME_PLACEHOLDER",
    "CLAIM_NAME_PLACEHOLDER",
    "RESERVED_PLACEHOLDERS",
    "SecretVolume",
    "ConfigMapVolume",
    "find_placeholders",
    "resolve_placeholders",
    # Materialization
    "new_pod",
]
