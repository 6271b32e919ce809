"""Tests for the endpoint registry and the reconciler registry.

Covers: list_endpoints / get_endpoint / get_client / register_endpoint,
list_reconcilers / get_reconciler_class / get_reconciler /
register_reconciler, unknown names and settings-driven poll overrides.
"""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

import httpx

from mgc_provider.clients.factory import (
    _ENDPOINT_REGISTRY,
    get_client,
    get_endpoint,
    list_endpoints,
    register_endpoint,
)
from mgc_provider.clients.http import EndpointSpec, HttpResourceClient
from mgc_provider.core.config import ProviderSettings
from mgc_provider.core.constants import (
    BS_VOLUME_ATTACHMENT,
    BS_VOLUMES,
    DBAAS_CLUSTERS,
    DBAAS_ENGINES,
    DBAAS_INSTANCE_TYPES,
    DBAAS_REPLICAS,
    K8S_CLUSTER,
    K8S_NODEPOOL,
    LOAD_BALANCERS,
    NETWORK_VPC_ROUTES,
    NETWORK_VPCS,
    VM_INSTANCES,
)
from mgc_provider.core.exceptions import RequestValidationError
from mgc_provider.models.resources import PollTiming
from mgc_provider.reconcilers.base import Reconciler
from mgc_provider.reconcilers.block_storage import VolumeAttachmentReconciler
from mgc_provider.reconcilers.database import DBaaSClusterReconciler, DBaaSReplicaReconciler
from mgc_provider.reconcilers.kubernetes import KubernetesClusterReconciler
from mgc_provider.reconcilers.network import VpcReconciler, VpcRouteReconciler
from mgc_provider.reconcilers.registry import (
    _RECONCILER_REGISTRY,
    get_reconciler,
    get_reconciler_class,
    list_reconcilers,
    register_reconciler,
)


class TestEndpointRegistry(unittest.TestCase):
    """Built-in endpoints and custom registration."""

    def test_includes_builtin_kinds(self) -> None:
        kinds = list_endpoints()
        for kind in (VM_INSTANCES, BS_VOLUMES, K8S_NODEPOOL, DBAAS_ENGINES, DBAAS_INSTANCE_TYPES):
            assert kind in kinds

    def test_returns_sorted(self) -> None:
        kinds = list_endpoints()
        assert kinds == sorted(kinds)

    def test_nodepool_status_is_nested(self) -> None:
        endpoint = get_endpoint(K8S_NODEPOOL)
        assert endpoint.status_field == "status.state"
        assert "{parent}" in endpoint.path

    def test_load_balancer_actions(self) -> None:
        endpoint = get_endpoint(LOAD_BALANCERS)
        assert endpoint.update_method == "PUT"
        assert endpoint.actions["health_checks"] == ("PUT", "health-checks")

    def test_route_and_replica_endpoints(self) -> None:
        assert get_endpoint(NETWORK_VPC_ROUTES).path == "/network/v0/vpcs/{parent}/routes"
        assert get_endpoint(DBAAS_REPLICAS).actions["resize"] == ("POST", "resize")

    def test_unknown_kind(self) -> None:
        with self.assertRaises(RequestValidationError) as ctx:
            get_endpoint("mgc_nonexistent")
        assert "mgc_nonexistent" in str(ctx.exception)
        assert "Available:" in str(ctx.exception)

    def test_get_client(self) -> None:
        http = MagicMock(spec=httpx.AsyncClient)
        client = get_client(NETWORK_VPCS, http)
        assert isinstance(client, HttpResourceClient)
        assert client.kind == NETWORK_VPCS
        assert client.endpoint.path == "/network/v0/vpcs"

    def test_register_custom(self) -> None:
        endpoint = EndpointSpec(path="/custom/v1/things")
        register_endpoint("mgc_custom_things", endpoint)
        try:
            assert get_endpoint("mgc_custom_things") is endpoint
        finally:
            _ENDPOINT_REGISTRY.pop("mgc_custom_things", None)

    def test_register_empty_name(self) -> None:
        with self.assertRaises(ValueError):
            register_endpoint("", EndpointSpec(path="/x"))


class TestEndpointSpec(unittest.TestCase):
    """URL building."""

    def test_item_url(self) -> None:
        assert EndpointSpec(path="/network/v0/vpcs").item_url("vpc-1") == "/network/v0/vpcs/vpc-1"

    def test_parent_substituted(self) -> None:
        endpoint = EndpointSpec(path="/database/v2/instances/{parent}/snapshots")
        assert endpoint.item_url("s-1", "db-1") == "/database/v2/instances/db-1/snapshots/s-1"

    def test_missing_parent(self) -> None:
        endpoint = EndpointSpec(path="/database/v2/instances/{parent}/snapshots")
        with self.assertRaises(RequestValidationError):
            endpoint.collection_url()


class TestReconcilerRegistry(unittest.TestCase):
    """Type name -> reconciler lookup."""

    def setUp(self) -> None:
        self.client_for = MagicMock(side_effect=lambda kind: MagicMock(kind=kind))

    def test_every_type_has_an_endpoint(self) -> None:
        """Every reconciler's kind is reachable through the endpoint registry."""
        endpoints = set(list_endpoints())
        for type_name in list_reconcilers():
            if type_name == BS_VOLUME_ATTACHMENT:
                continue
            assert type_name in endpoints

    def test_lists_thirteen_types(self) -> None:
        assert len(list_reconcilers()) == 13

    def test_class_lookup(self) -> None:
        assert get_reconciler_class(NETWORK_VPCS) is VpcReconciler
        assert get_reconciler_class(K8S_CLUSTER) is KubernetesClusterReconciler

    def test_config_kind_matches_type_name(self) -> None:
        for type_name in list_reconcilers():
            assert get_reconciler_class(type_name).config.kind == type_name

    def test_unknown_type(self) -> None:
        with self.assertRaises(RequestValidationError) as ctx:
            get_reconciler_class("mgc_teleporters")
        assert "mgc_teleporters" in str(ctx.exception)

    def test_get_reconciler_uses_kind_client(self) -> None:
        reconciler = get_reconciler(NETWORK_VPCS, self.client_for, ProviderSettings())
        assert isinstance(reconciler, VpcReconciler)
        self.client_for.assert_called_once_with(NETWORK_VPCS)

    def test_attachment_uses_volume_client(self) -> None:
        reconciler = get_reconciler(BS_VOLUME_ATTACHMENT, self.client_for, ProviderSettings())
        assert isinstance(reconciler, VolumeAttachmentReconciler)
        assert reconciler.client.kind == BS_VOLUMES

    def test_dbaas_uses_lookup_clients(self) -> None:
        get_reconciler(DBAAS_CLUSTERS, self.client_for, ProviderSettings())
        requested = [call.args[0] for call in self.client_for.call_args_list]
        assert requested == [DBAAS_CLUSTERS, DBAAS_ENGINES, DBAAS_INSTANCE_TYPES]

    def test_replica_uses_lookup_clients(self) -> None:
        reconciler = get_reconciler(DBAAS_REPLICAS, self.client_for, ProviderSettings())
        assert isinstance(reconciler, DBaaSReplicaReconciler)
        requested = [call.args[0] for call in self.client_for.call_args_list]
        assert requested == [DBAAS_REPLICAS, DBAAS_ENGINES, DBAAS_INSTANCE_TYPES]

    def test_route_timing(self) -> None:
        reconciler = get_reconciler(NETWORK_VPC_ROUTES, self.client_for, ProviderSettings())
        assert isinstance(reconciler, VpcRouteReconciler)
        assert reconciler._timing == PollTiming.minutes(100, 60)

    def test_default_timing_is_per_kind(self) -> None:
        reconciler = get_reconciler(DBAAS_CLUSTERS, self.client_for, ProviderSettings())
        assert reconciler._timing == PollTiming.minutes(90, 15)
        assert reconciler._delete_timing == PollTiming.minutes(90, 10)
        assert reconciler._transient_retries == 0

    def test_settings_override_timing(self) -> None:
        settings = ProviderSettings(
            poll_timeout_s=30,
            poll_interval_s=1,
            poll_transient_retries=2,
            poll_retry_base_s=0.5,
        )
        reconciler = get_reconciler(DBAAS_CLUSTERS, self.client_for, settings)
        assert reconciler._timing == PollTiming(timeout_s=30, interval_s=1)
        assert reconciler._delete_timing == PollTiming(timeout_s=30, interval_s=1)
        assert reconciler._transient_retries == 2
        assert reconciler._retry_base == 0.5

    def test_register_custom(self) -> None:
        register_reconciler("mgc_custom_things", lambda: VpcReconciler)
        try:
            assert get_reconciler_class("mgc_custom_things") is VpcReconciler
        finally:
            _RECONCILER_REGISTRY.pop("mgc_custom_things", None)

    def test_register_empty_name(self) -> None:
        with self.assertRaises(ValueError):
            register_reconciler("", lambda: Reconciler)

    def test_dbaas_class(self) -> None:
        assert get_reconciler_class(DBAAS_CLUSTERS) is DBaaSClusterReconciler
