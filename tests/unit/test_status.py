"""Tests for status classification.

Covers: classification order (target, error, known, unknown), per-kind
error conventions, case-insensitive kinds, multiple targets and totality
over every documented status value.
"""

from __future__ import annotations

import unittest

from mgc_provider.models.status import (
    DBAAS_CLUSTER_STATUS,
    DBAAS_INSTANCE_STATUS,
    DBAAS_REPLICA_STATUS,
    DBAAS_SNAPSHOT_STATUS,
    K8S_CLUSTER_STATUS,
    LOAD_BALANCER_STATUS,
    NODEPOOL_STATUS,
    SNAPSHOT_STATUS,
    VM_INSTANCE_STATUS,
    VOLUME_STATUS,
    VPC_ROUTE_STATUS,
    VPC_STATUS,
    StatusClass,
    StatusTaxonomy,
    error_contains,
    error_equals,
    error_in,
    error_suffix,
)

ALL_TAXONOMIES = (
    VM_INSTANCE_STATUS,
    VOLUME_STATUS,
    SNAPSHOT_STATUS,
    DBAAS_INSTANCE_STATUS,
    DBAAS_CLUSTER_STATUS,
    DBAAS_SNAPSHOT_STATUS,
    DBAAS_REPLICA_STATUS,
    K8S_CLUSTER_STATUS,
    NODEPOOL_STATUS,
    VPC_STATUS,
    VPC_ROUTE_STATUS,
    LOAD_BALANCER_STATUS,
)


class TestErrorRules(unittest.TestCase):
    """The error rule helpers."""

    def test_error_in(self) -> None:
        rule = error_in({"creating_error", "deleting_error"})
        assert rule("creating_error")
        assert not rule("creating_error_capacity")

    def test_error_contains(self) -> None:
        rule = error_contains("error")
        assert rule("extend_error_quota")
        assert not rule("extending")

    def test_error_suffix(self) -> None:
        rule = error_suffix("error")
        assert rule("restoring_error")
        assert not rule("creating_error_quota")

    def test_error_equals(self) -> None:
        rule = error_equals("failed")
        assert rule("failed")
        assert not rule("failed_over")


class TestClassificationOrder(unittest.TestCase):
    """target -> error -> known -> unknown."""

    def setUp(self) -> None:
        self.taxonomy = StatusTaxonomy(
            name="sample",
            known=frozenset({"creating", "ready", "broken"}),
            is_error=error_equals("broken"),
        )

    def test_target_is_success(self) -> None:
        assert self.taxonomy.classify("ready", ["ready"]) is StatusClass.SUCCESS

    def test_error_status(self) -> None:
        assert self.taxonomy.classify("broken", ["ready"]) is StatusClass.ERROR

    def test_known_status_is_pending(self) -> None:
        assert self.taxonomy.classify("creating", ["ready"]) is StatusClass.PENDING

    def test_unrecognised_status_is_unknown(self) -> None:
        assert self.taxonomy.classify("migrating", ["ready"]) is StatusClass.UNKNOWN

    def test_target_wins_over_error_rule(self) -> None:
        """A status that is both a target and an error is reported as success."""
        assert self.taxonomy.classify("broken", ["broken"]) is StatusClass.SUCCESS

    def test_empty_targets(self) -> None:
        assert self.taxonomy.classify("ready", []) is StatusClass.PENDING

    def test_matches(self) -> None:
        assert self.taxonomy.matches("creating", ("creating", "ready"))
        assert not self.taxonomy.matches("broken", ("creating",))


class TestVirtualMachineStatus(unittest.TestCase):
    """Explicit error set of the compute API."""

    def test_completed(self) -> None:
        assert VM_INSTANCE_STATUS.classify("completed", ["completed"]) is StatusClass.SUCCESS

    def test_quota_error(self) -> None:
        result = VM_INSTANCE_STATUS.classify("creating_error_quota_vcpu", ["completed"])
        assert result is StatusClass.ERROR

    def test_deleting_network_error_is_not_an_error(self) -> None:
        """The network cleanup failure is a documented transitional value."""
        result = VM_INSTANCE_STATUS.classify("deleting_network_error", ["deleted"])
        assert result is StatusClass.PENDING

    def test_provisioning_pending(self) -> None:
        assert VM_INSTANCE_STATUS.classify("provisioning", ["completed"]) is StatusClass.PENDING


class TestBlockStorageStatus(unittest.TestCase):
    """Substring vs suffix conventions."""

    def test_volume_substring_error(self) -> None:
        assert VOLUME_STATUS.classify("extend_error_quota", ["completed"]) is StatusClass.ERROR

    def test_snapshot_suffix_error(self) -> None:
        assert SNAPSHOT_STATUS.classify("replicating_error", ["completed"]) is StatusClass.ERROR

    def test_snapshot_quota_error_not_suffix(self) -> None:
        """``creating_error_quota`` does not end in ``error``."""
        result = SNAPSHOT_STATUS.classify("creating_error_quota", ["completed"])
        assert result is StatusClass.PENDING


class TestDatabaseStatus(unittest.TestCase):
    """DBaaS taxonomies."""

    def test_instance_error_substring(self) -> None:
        assert DBAAS_INSTANCE_STATUS.classify("ERROR_DELETING", ["DELETED"]) is StatusClass.ERROR

    def test_instance_active(self) -> None:
        assert DBAAS_INSTANCE_STATUS.classify("ACTIVE", ["ACTIVE"]) is StatusClass.SUCCESS

    def test_cluster_case_insensitive(self) -> None:
        assert DBAAS_CLUSTER_STATUS.classify("active", ["ACTIVE"]) is StatusClass.SUCCESS
        assert DBAAS_CLUSTER_STATUS.classify("Error", ["ACTIVE"]) is StatusClass.ERROR
        assert DBAAS_CLUSTER_STATUS.classify("CREATING", ["ACTIVE"]) is StatusClass.PENDING

    def test_cluster_matches_case_insensitive(self) -> None:
        assert DBAAS_CLUSTER_STATUS.matches("deleting", ("DELETING",))

    def test_snapshot_equals_error(self) -> None:
        assert DBAAS_SNAPSHOT_STATUS.classify("ERROR", ["AVAILABLE"]) is StatusClass.ERROR
        assert DBAAS_SNAPSHOT_STATUS.classify("PENDING", ["AVAILABLE"]) is StatusClass.PENDING

    def test_replica_error_substring(self) -> None:
        assert DBAAS_REPLICA_STATUS.classify("ERROR_DELETING", ["DELETED"]) is StatusClass.ERROR
        assert DBAAS_REPLICA_STATUS.classify("RESIZING", ["ACTIVE"]) is StatusClass.PENDING


class TestKubernetesStatus(unittest.TestCase):
    """Cluster and node pool taxonomies."""

    def test_cluster_multiple_targets(self) -> None:
        targets = ("running", "provisioned")
        assert K8S_CLUSTER_STATUS.classify("Running", targets) is StatusClass.SUCCESS
        assert K8S_CLUSTER_STATUS.classify("PROVISIONED", targets) is StatusClass.SUCCESS

    def test_cluster_failed(self) -> None:
        assert K8S_CLUSTER_STATUS.classify("Failed", ["running"]) is StatusClass.ERROR

    def test_nodepool_error_variants(self) -> None:
        assert NODEPOOL_STATUS.classify("Failed", ["Running"]) is StatusClass.ERROR
        assert NODEPOOL_STATUS.classify("ScalingError", ["Running"]) is StatusClass.ERROR

    def test_nodepool_scaling_pending(self) -> None:
        assert NODEPOOL_STATUS.classify("Scaling", ["Running"]) is StatusClass.PENDING


class TestNetworkStatus(unittest.TestCase):
    """VPC, route and load balancer taxonomies."""

    def test_vpc_created(self) -> None:
        assert VPC_STATUS.classify("created", ["created"]) is StatusClass.SUCCESS

    def test_vpc_error(self) -> None:
        assert VPC_STATUS.classify("error", ["created"]) is StatusClass.ERROR

    def test_route_case_insensitive(self) -> None:
        assert VPC_ROUTE_STATUS.classify("Created", ["created"]) is StatusClass.SUCCESS
        assert VPC_ROUTE_STATUS.classify("ERROR", ["created"]) is StatusClass.ERROR
        assert VPC_ROUTE_STATUS.classify("Pending", ["created"]) is StatusClass.PENDING

    def test_load_balancer_failed(self) -> None:
        assert LOAD_BALANCER_STATUS.classify("failed", ["running"]) is StatusClass.ERROR


class TestTotality(unittest.TestCase):
    """Every documented status maps to exactly one class, never UNKNOWN."""

    def test_known_statuses_never_unknown(self) -> None:
        for taxonomy in ALL_TAXONOMIES:
            for status in taxonomy.known:
                with self.subTest(kind=taxonomy.name, status=status):
                    result = taxonomy.classify(status, ["__target__"])
                    assert result in (StatusClass.PENDING, StatusClass.ERROR)

    def test_unknown_never_success(self) -> None:
        for taxonomy in ALL_TAXONOMIES:
            with self.subTest(kind=taxonomy.name):
                assert taxonomy.classify("zz_unheard_of", ["running"]) is StatusClass.UNKNOWN
