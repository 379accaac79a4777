"""
Unit tests for pod materialization.
"""

import re

import pytest

pytest.importorskip("kubernetes")

from kubernetes import client

from esoperator.schemas import NodeGroup
from esoperator.services.podspec import TEMPLATE_HASH_LABEL_NAME, new_pod


class TestNewPod:

    def test_distinct_names_same_hash(self, make_cluster, generate):
        """Replicas of a group get distinct names but share the template hash."""
        cluster = make_cluster({"name": "default", "count": 3})

        pods = [new_pod(cluster, pod_spec) for pod_spec in generate(cluster)]

        assert [p.metadata.name for p in pods] == [
            "quickstart-es-default-0", "quickstart-es-default-1", "quickstart-es-default-2"
        ]
        assert len({p.metadata.labels[TEMPLATE_HASH_LABEL_NAME] for p in pods}) == 1

    def test_hash_matches_context(self, cluster, generate):
        for pod_spec in generate(cluster):
            pod = new_pod(cluster, pod_spec)
            assert pod.metadata.labels[TEMPLATE_HASH_LABEL_NAME] == pod_spec.template_hash

    def test_metadata_and_dns(self, cluster, generate):
        pod = new_pod(cluster, generate(cluster)[0])

        assert pod.api_version == "v1"
        assert pod.kind == "Pod"
        assert pod.metadata.namespace == "elastic"
        assert pod.spec.hostname == "quickstart-es-master-0"
        assert pod.spec.subdomain == "quickstart"

    def test_unnamed_group_uses_position(self, make_cluster, generate):
        cluster = make_cluster({"name": "first", "count": 1}, {"count": 2})

        names = [new_pod(cluster, p).metadata.name for p in generate(cluster)]

        assert names == ["quickstart-es-first-0", "quickstart-es-1-0", "quickstart-es-1-1"]

    def test_long_group_names_give_distinct_valid_names(self, make_cluster, generate):
        """Group names differing only past the truncation point still give distinct pods."""
        cluster = make_cluster(
            {"name": "a" * 55 + "-hot", "count": 1},
            {"name": "a" * 55 + "-warm", "count": 1},
        )

        names = [new_pod(cluster, p).metadata.name for p in generate(cluster)]

        assert names[0] != names[1]
        for name in names:
            assert len(name) <= 63
            assert re.match(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$", name)

    def test_user_hostname_and_subdomain_kept(self, make_cluster, generate):
        template = client.V1PodTemplateSpec(
            spec=client.V1PodSpec(containers=[], hostname="custom-host", subdomain="custom-domain")
        )
        cluster = make_cluster(NodeGroup(name="default", count=1, pod_template=template))

        pod = new_pod(cluster, generate(cluster)[0])

        assert pod.spec.hostname == "custom-host"
        assert pod.spec.subdomain == "custom-domain"

    def test_context_not_mutated(self, cluster, generate):
        pod_spec = generate(cluster)[0]

        pod = new_pod(cluster, pod_spec)
        pod.metadata.labels["mutated"] = "true"
        pod.spec.containers[0].image = "mutated"

        assert pod_spec.pod_template.metadata.name is None
        assert "mutated" not in pod_spec.pod_template.metadata.labels
        assert pod_spec.pod_template.spec.hostname is None
        assert pod_spec.pod_template.spec.containers[0].image != "mutated"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
