"""
Test configuration and fixtures for pytest.

Fixtures include: explicit settings, cluster specs, node groups, and fake
generators standing in for the env / config / init container strategies.
"""

import os
import pytest

from kubernetes import client


def pytest_configure(config):
    """
    Pytest hook called before test collection.
    Sets up test environment variables and registers custom markers.
    """
    os.environ["LOG_LEVEL"] = "DEBUG"

    # Import and clear settings cache after env vars are set
    from esoperator.config import get_settings
    get_settings.cache_clear()

    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


@pytest.fixture
def settings():
    """Settings with explicit values, independent of the environment."""
    from esoperator.config import Settings
    return Settings(
        default_image_repository="docker.elastic.co/elasticsearch/elasticsearch",
        default_memory_request="2Gi",
        termination_grace_period_seconds=120,
        default_data_volume_size="1Gi",
        default_set_vm_max_map_count=True,
        vm_max_map_count=262144,
    )


@pytest.fixture
def make_cluster():
    """Factory for cluster specs."""
    from esoperator.schemas import ClusterSpec, NodeGroup

    def _make_cluster(*node_groups, name="quickstart", version="7.2.0", **kwargs):
        groups = [
            group if isinstance(group, NodeGroup) else NodeGroup(**group)
            for group in node_groups
        ]
        return ClusterSpec(name=name, namespace="elastic", version=version, node_groups=groups, **kwargs)

    return _make_cluster


@pytest.fixture
def cluster(make_cluster):
    """Three master nodes and two data nodes."""
    return make_cluster(
        {"name": "master", "count": 3, "config": {"node.data": False}},
        {"name": "data", "count": 2, "config": {"node.master": False}},
    )


@pytest.fixture
def fake_env():
    def _env(params):
        return [client.V1EnvVar(name="FAKE", value=params.cluster.name)]
    return _env


@pytest.fixture
def fake_config():
    from esoperator.services.podspec import CanonicalConfig

    def _config(cluster_name, config):
        return CanonicalConfig({**config, "cluster.name": cluster_name})
    return _config


@pytest.fixture
def fake_init_containers():
    def _init_containers(image, set_vm_max_map_count, transport_certificates, cluster_name):
        return [
            client.V1Container(
                name="fake-init",
                volume_mounts=[transport_certificates.volume_mount()]
            )
        ]
    return _init_containers


@pytest.fixture
def generate(settings, fake_env, fake_config, fake_init_containers):
    """Run the expander with fake generators."""
    from esoperator.services.podspec import new_expected_pod_specs, new_params_template

    def _generate(cluster, keystore_resources=None, env=None, config=None, init_containers=None):
        return new_expected_pod_specs(
            cluster,
            new_params_template(cluster, keystore_resources=keystore_resources, settings=settings),
            env or fake_env,
            config or fake_config,
            init_containers or fake_init_containers,
        )

    return _generate


@pytest.fixture
def keystore_resources():
    """Factory for keystore resources with a given version."""
    from esoperator.services.podspec import KeystoreResources

    def _keystore(version="1"):
        return KeystoreResources(
            volume=client.V1Volume(
                name="elastic-internal-secure-settings",
                secret=client.V1SecretVolumeSource(secret_name="quickstart-es-secure-settings")
            ),
            init_container=client.V1Container(name="elastic-internal-init-keystore", command=["keystore.sh"]),
            version=version,
        )

    return _keystore
