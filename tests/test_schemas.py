"""
Unit tests for cluster spec validation.

Tests:
- Cluster and node group names must be DNS-1123 labels
- Node group identities must be unique
"""

import pytest

pytest.importorskip("kubernetes")

from pydantic import ValidationError

from esoperator.schemas import ClusterSpec, NodeGroup


class TestNodeGroupName:

    @pytest.mark.parametrize("name", ["master", "hot-data", "g1", "a" * 63])
    def test_valid(self, name):
        assert NodeGroup(name=name, count=1).name == name

    @pytest.mark.parametrize("name", ["Master_Nodes", "-master", "master-", "data.nodes", "", "a" * 64])
    def test_invalid(self, name):
        with pytest.raises(ValidationError):
            NodeGroup(name=name, count=1)

    def test_unnamed(self):
        assert NodeGroup(count=1).identity(2) == 2


class TestClusterSpec:

    def test_invalid_cluster_name(self):
        with pytest.raises(ValidationError):
            ClusterSpec(name="Quick_Start", version="7.2.0")

    def test_duplicate_node_group_names(self):
        with pytest.raises(ValidationError) as exc_info:
            ClusterSpec(
                name="quickstart",
                version="7.2.0",
                node_groups=[NodeGroup(name="data", count=1), NodeGroup(name="data", count=2)]
            )

        assert "Duplicate node group" in str(exc_info.value)

    def test_name_clashing_with_unnamed_position(self):
        """An unnamed second group is identified as "1", like a group named "1"."""
        with pytest.raises(ValidationError):
            ClusterSpec(
                name="quickstart",
                version="7.2.0",
                node_groups=[NodeGroup(name="1", count=1), NodeGroup(count=1)]
            )

    def test_node_count(self):
        cluster = ClusterSpec(
            name="quickstart",
            version="7.2.0",
            node_groups=[NodeGroup(name="master", count=3), NodeGroup(count=2)]
        )

        assert cluster.node_count() == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
