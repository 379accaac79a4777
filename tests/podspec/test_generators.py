"""
Unit tests for the default env / config / init container generators.

Tests:
- Heap sizing from the container memory
- Version-specific discovery and realm settings
- Reserved settings cannot be overridden
- Init container validation and vm.max_map_count handling
- End-to-end generation with the default generators
"""

import pytest

pytest.importorskip("kubernetes")

from kubernetes import client

from esoperator.errors import ConfigValidationError, InitContainerError, PodSpecGenerationError, VersionParseError
from esoperator.schemas import NodeGroup
from esoperator.services.podspec import (
    ConfigGenerator,
    DefaultConfigGenerator,
    DefaultEnvGenerator,
    DefaultInitContainerGenerator,
    new_default_expected_pod_specs,
    new_default_generators,
    new_params_template,
)
from esoperator.services.podspec.generators import (
    OS_SETTINGS_CONTAINER_NAME,
    PREPARE_FS_CONTAINER_NAME,
    quantity_to_megabytes,
)
from esoperator.services.podspec.volumes import transport_certificates_volume
from esoperator.utils import parse_version

IMAGE = "docker.elastic.co/elasticsearch/elasticsearch:7.2.0"


def _env_by_name(env):
    return {e.name: e for e in env}


class TestDefaultEnvGenerator:

    def _params(self, make_cluster, settings, group, **kwargs):
        cluster = make_cluster(group, **kwargs)
        return new_params_template(cluster, settings=settings).for_node(cluster, cluster.node_groups[0])

    def test_variables(self, make_cluster, settings):
        params = self._params(make_cluster, settings, {"name": "default", "count": 1})

        env = DefaultEnvGenerator()(params)

        assert [e.name for e in env] == [
            "NODE_NAME", "POD_IP", "PROBE_USERNAME", "PROBE_PASSWORD_FILE",
            "READINESS_PROBE_PROTOCOL", "ES_JAVA_OPTS"
        ]
        by_name = _env_by_name(env)
        assert by_name["NODE_NAME"].value_from.field_ref.field_path == "metadata.name"
        assert by_name["PROBE_USERNAME"].value == "elastic-internal-probe"
        assert by_name["PROBE_PASSWORD_FILE"].value == "/mnt/elastic-internal/probe-user/elastic-internal-probe"
        assert by_name["READINESS_PROBE_PROTOCOL"].value == "https"
        # half of the 2Gi default memory request
        assert by_name["ES_JAVA_OPTS"].value == "-Xms1024M -Xmx1024M"

    def test_http_without_tls(self, make_cluster, settings):
        params = self._params(make_cluster, settings, {"name": "default", "count": 1}, http={"tls_enabled": False})

        assert _env_by_name(DefaultEnvGenerator()(params))["READINESS_PROBE_PROTOCOL"].value == "http"

    def test_heap_from_memory_limit(self, make_cluster, settings):
        template = client.V1PodTemplateSpec(
            spec=client.V1PodSpec(containers=[client.V1Container(
                name="elasticsearch",
                resources=client.V1ResourceRequirements(requests={"memory": "2Gi"}, limits={"memory": "4Gi"})
            )])
        )
        params = self._params(make_cluster, settings, NodeGroup(name="default", count=1, pod_template=template))

        assert _env_by_name(DefaultEnvGenerator()(params))["ES_JAVA_OPTS"].value == "-Xms2048M -Xmx2048M"

    def test_quantity_to_megabytes(self):
        assert quantity_to_megabytes("2Gi") == 2048
        assert quantity_to_megabytes("512Mi") == 512


class TestDefaultConfigGenerator:

    def test_is_a_config_generator(self):
        assert isinstance(DefaultConfigGenerator(parse_version("7.2.0")), ConfigGenerator)

    def test_version_7_settings(self):
        config = DefaultConfigGenerator(parse_version("7.2.0"))("quickstart", {})

        assert config.get("cluster.name") == "quickstart"
        assert config.get("discovery.seed_providers") == "file"
        assert config.get("discovery.zen.hosts_provider") is None
        assert config.get("xpack.security.authc.realms.file.file1.order") == -100
        assert config.get("xpack.security.authc.realms.native.native1.order") == -99

    def test_version_6_settings(self):
        config = DefaultConfigGenerator(parse_version("6.8.0"))("quickstart", {})

        assert config.get("discovery.zen.hosts_provider") == "file"
        assert config.get("discovery.seed_providers") is None
        assert config.get("xpack.security.authc.realms.file1.type") == "file"
        assert config.get("xpack.security.authc.realms.native1.type") == "native"

    def test_http_tls_disabled(self):
        config = DefaultConfigGenerator(parse_version("7.2.0"), http_tls_enabled=False)("quickstart", {})

        assert config.get("xpack.security.http.ssl.enabled") is False
        assert config.get("xpack.security.http.ssl.key") is None

    def test_user_overrides_merged(self):
        config = DefaultConfigGenerator(parse_version("7.2.0"))(
            "quickstart", {"node": {"master": False}, "xpack.security.enabled": True}
        )

        assert config.get("node.master") is False
        assert config.unpack().master is False

    @pytest.mark.parametrize("override", [
        {"cluster.name": "other"},
        {"path": {"data": "/elsewhere"}},
        {"xpack.security.authc.realms.file.file1.order": 0},
        {"discovery.seed_hosts": ["10.0.0.1"]},
    ])
    def test_reserved_settings_rejected(self, override):
        with pytest.raises(ConfigValidationError):
            DefaultConfigGenerator(parse_version("7.2.0"))("quickstart", override)


class TestDefaultInitContainerGenerator:

    def test_prepare_fs_and_os_settings(self, settings):
        containers = DefaultInitContainerGenerator(settings)(
            IMAGE, True, transport_certificates_volume(), "quickstart"
        )

        assert [c.name for c in containers] == [OS_SETTINGS_CONTAINER_NAME, PREPARE_FS_CONTAINER_NAME]
        os_settings, prepare_fs = containers
        assert os_settings.security_context.privileged is True
        assert os_settings.command == ["sysctl", "-w", "vm.max_map_count=262144"]
        assert prepare_fs.image == IMAGE
        assert "/mnt/elastic-internal/transport-certificates" in prepare_fs.command[-1]
        assert "elastic-internal-transport-certificates" in [m.name for m in prepare_fs.volume_mounts]

    def test_vm_max_map_count_disabled(self, settings):
        containers = DefaultInitContainerGenerator(settings)(
            IMAGE, False, transport_certificates_volume(), "quickstart"
        )

        assert [c.name for c in containers] == [PREPARE_FS_CONTAINER_NAME]

    def test_unset_flag_uses_settings_default(self, settings):
        disabled = settings.model_copy(update={"default_set_vm_max_map_count": False})

        containers = DefaultInitContainerGenerator(disabled)(
            IMAGE, None, transport_certificates_volume(), "quickstart"
        )

        assert [c.name for c in containers] == [PREPARE_FS_CONTAINER_NAME]

    @pytest.mark.parametrize("image", ["", "Not An Image", "registry/UPPER:tag"])
    def test_invalid_image(self, settings, image):
        with pytest.raises(InitContainerError):
            DefaultInitContainerGenerator(settings)(image, True, transport_certificates_volume(), "quickstart")

    def test_invalid_flag(self, settings):
        with pytest.raises(InitContainerError):
            DefaultInitContainerGenerator(settings)(IMAGE, "yes", transport_certificates_volume(), "quickstart")


class TestDefaultGenerators:

    def test_selection(self, make_cluster, settings):
        generators = new_default_generators(make_cluster(version="6.8.0"), settings)

        assert generators.config.version == parse_version("6.8.0")

    def test_invalid_version(self, make_cluster):
        with pytest.raises(VersionParseError):
            new_default_generators(make_cluster(version="7.2"))

    def test_end_to_end(self, cluster, settings):
        pod_specs = new_default_expected_pod_specs(cluster, settings=settings)

        assert len(pod_specs) == 5
        template = pod_specs[0].pod_template
        assert [c.name for c in template.spec.init_containers] == [
            OS_SETTINGS_CONTAINER_NAME, PREPARE_FS_CONTAINER_NAME
        ]
        assert pod_specs[0].config.get("discovery.seed_providers") == "file"
        assert template.metadata.labels["elasticsearch.k8s.elastic.co/node-data"] == "false"
        assert pod_specs[3].pod_template.metadata.labels["elasticsearch.k8s.elastic.co/node-master"] == "false"

    def test_end_to_end_reserved_override(self, make_cluster, settings):
        cluster = make_cluster({"name": "default", "count": 2, "config": {"cluster.name": "other"}})

        with pytest.raises(PodSpecGenerationError) as exc_info:
            new_default_expected_pod_specs(cluster, settings=settings)

        assert isinstance(exc_info.value.cause, ConfigValidationError)
        assert exc_info.value.ordinal == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
