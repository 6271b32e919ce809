"""Shared provider constants.

Centralises the API environment/region URL table, HTTP header names and
the registered resource type names used by the client factory, the
reconciler registry and the orchestrator facade.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Environments and regions
# ---------------------------------------------------------------------------

ENV_PROD: str = "prod"
ENV_PRE_PROD: str = "pre-prod"
ENV_DEV_QA: str = "dev-qa"

DEFAULT_ENV: str = ENV_PROD
DEFAULT_REGION: str = "br-se1"

URL_PROD: str = "https://api.magalu.cloud"
URL_PRE_PROD: str = "https://api.pre-prod.jaxyendy.com"
URL_DEV_QA: str = "https://api.dev-qa.jaxyendy.com"

REGION_URLS: dict[str, dict[str, str]] = {
    ENV_PROD: {
        "br-ne1": f"{URL_PROD}/br-ne1",
        "br-mgl1": f"{URL_PROD}/br-se-1",
        "br-se1": f"{URL_PROD}/br-se1",
    },
    ENV_PRE_PROD: {
        "br-ne1": f"{URL_PRE_PROD}/br-ne1",
        "br-mgl1": f"{URL_PRE_PROD}/br-mgl1",
        "br-se1": f"{URL_PRE_PROD}/br-se1",
    },
    ENV_DEV_QA: {
        "br-ne1": f"{URL_DEV_QA}/br-ne1",
        "br-mgl1": f"{URL_DEV_QA}/br-mgl1",
        "br-se1": f"{URL_DEV_QA}/br-se1",
        "br-mc1": f"{URL_DEV_QA}/br-mc1",
    },
}
"""API base URL per environment and region."""

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

API_KEY_HEADER: str = "x-api-key"
REQUEST_ID_HEADER: str = "X-Request-Id"
TRACE_ID_HEADER: str = "X-Mgc-Trace-Id"

# ---------------------------------------------------------------------------
# Resource type names (as registered with the orchestrator)
# ---------------------------------------------------------------------------

VM_INSTANCES: str = "mgc_virtual_machine_instances"
BS_VOLUMES: str = "mgc_block_storage_volumes"
BS_SNAPSHOTS: str = "mgc_block_storage_snapshots"
BS_VOLUME_ATTACHMENT: str = "mgc_block_storage_volume_attachment"
DBAAS_INSTANCES: str = "mgc_dbaas_instances"
DBAAS_CLUSTERS: str = "mgc_dbaas_clusters"
DBAAS_INSTANCE_SNAPSHOTS: str = "mgc_dbaas_instances_snapshots"
DBAAS_REPLICAS: str = "mgc_dbaas_replicas"
K8S_CLUSTER: str = "mgc_kubernetes_cluster"
K8S_NODEPOOL: str = "mgc_kubernetes_nodepool"
NETWORK_VPCS: str = "mgc_network_vpcs"
NETWORK_VPC_ROUTES: str = "mgc_network_vpcs_route"
LOAD_BALANCERS: str = "mgc_network_load_balancers"

# Lookup-only endpoints used to resolve names before mutating calls.
DBAAS_ENGINES: str = "mgc_dbaas_engines"
DBAAS_INSTANCE_TYPES: str = "mgc_dbaas_instance_types"

#: Separator for composite import identifiers (``"parent_id,child_id"``).
IMPORT_ID_SEPARATOR: str = ","
