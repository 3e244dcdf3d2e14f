"""
Raw object normalization

Parsers turn raw Kubernetes objects (the JSON the provider returns) into
Resource records with a normalized status and a kind-tagged payload. They
are deterministic and side-effect free so that the same object discovered
through two processors always yields an identical Resource.
"""

from typing import Any, Callable, Dict, List, Optional

import structlog

from ..models import (
    AutoscalerPayload,
    ConfigMapPayload,
    DeploymentPayload,
    IngressClassPayload,
    IngressPayload,
    PodPayload,
    Resource,
    ResourceKind,
    ResourcePayload,
    ResourceStatus,
    SecretPayload,
    ServicePayload,
    ServicePort,
)

logger = structlog.get_logger(__name__)


class ParserError(Exception):
    """Raised when a raw object cannot be normalized"""
    pass


def safe_get(data: Any, path: str, default: Any = None) -> Any:
    """Safely get nested dictionary value using dot notation"""
    value = data
    try:
        for key in path.split("."):
            if isinstance(value, dict):
                value = value[key]
            elif isinstance(value, list) and key.isdigit():
                value = value[int(key)]
            else:
                return default
        return default if value is None else value
    except (KeyError, IndexError, TypeError, ValueError):
        return default


def replica_status(ready: int, desired: int) -> ResourceStatus:
    """Readiness status for a replicated workload"""
    details = f"{ready}/{desired} replicas ready"
    if desired == 0 or ready == desired:
        return ResourceStatus(phase="Ready", ready=True, details=details)
    if ready > 0:
        return ResourceStatus(phase="PartiallyReady", ready=False, details=details)
    return ResourceStatus(phase="NotReady", ready=False, details=details)


def is_pod_ready(raw: Dict[str, Any]) -> bool:
    for condition in safe_get(raw, "status.conditions", []):
        if condition.get("type") == "Ready":
            return condition.get("status") == "True"
    return False


def _deployment(raw: Dict[str, Any]):
    desired = safe_get(raw, "spec.replicas", 1)
    ready = safe_get(raw, "status.readyReplicas", 0)
    payload = DeploymentPayload(
        desired_replicas=desired,
        ready_replicas=ready,
        selector=safe_get(raw, "spec.selector", {}),
        strategy=safe_get(raw, "spec.strategy.type", ""),
    )
    return replica_status(ready, desired), payload


def _pod(raw: Dict[str, Any]):
    phase = safe_get(raw, "status.phase", "Unknown")
    statuses = safe_get(raw, "status.containerStatuses", [])
    containers = safe_get(raw, "spec.containers", [])
    named_ports = {}
    for container in containers:
        for port in container.get("ports") or []:
            if port.get("name") and port.get("containerPort") is not None:
                named_ports[port["name"]] = port["containerPort"]

    ready_containers = sum(1 for s in statuses if s.get("ready"))
    payload = PodPayload(
        phase=phase,
        node_name=safe_get(raw, "spec.nodeName", ""),
        ready_containers=ready_containers,
        total_containers=len(containers),
        container_ports=named_ports,
    )
    status = ResourceStatus(
        phase=phase,
        ready=is_pod_ready(raw),
        details=f"{ready_containers}/{len(containers)} containers ready",
    )
    return status, payload


def parse_service_ports(raw: Dict[str, Any]) -> List[ServicePort]:
    ports = []
    for port in safe_get(raw, "spec.ports", []):
        target = port.get("targetPort")
        ports.append(ServicePort(
            port=port.get("port", 0),
            target_port=None if target is None else str(target),
            protocol=port.get("protocol") or "TCP",
            name=port.get("name") or "",
            node_port=port.get("nodePort"),
        ))
    return ports


def _load_balancer_addresses(raw: Dict[str, Any]) -> List[str]:
    addresses = []
    for entry in safe_get(raw, "status.loadBalancer.ingress", []):
        if entry.get("ip"):
            addresses.append(entry["ip"])
        if entry.get("hostname"):
            addresses.append(entry["hostname"])
    return addresses


def _service(raw: Dict[str, Any]):
    service_type = safe_get(raw, "spec.type", "ClusterIP")
    ports = parse_service_ports(raw)
    payload = ServicePayload(
        service_type=service_type,
        cluster_ip=safe_get(raw, "spec.clusterIP", ""),
        selector=safe_get(raw, "spec.selector", {}),
        ports=ports,
    )

    status = ResourceStatus(phase="Active", ready=True)
    if service_type == "LoadBalancer":
        addresses = _load_balancer_addresses(raw)
        if addresses:
            status.details = f"LoadBalancer: {addresses[0]}"
        else:
            status.phase = "Pending"
            status.ready = False
            status.details = "Waiting for LoadBalancer"
    elif service_type == "NodePort":
        node_ports = [str(p.node_port) for p in ports if p.node_port]
        status.details = f"NodePorts: {', '.join(node_ports)}"
    elif service_type == "ExternalName":
        status.details = f"ExternalName: {safe_get(raw, 'spec.externalName', '')}"
    else:
        status.details = f"ClusterIP: {payload.cluster_ip}"
    return status, payload


def _ingress(raw: Dict[str, Any]):
    rules = safe_get(raw, "spec.rules", [])
    hosts = [rule["host"] for rule in rules if rule.get("host")]
    path_count = sum(len(safe_get(rule, "http.paths", [])) for rule in rules)
    addresses = _load_balancer_addresses(raw)
    payload = IngressPayload(
        hosts=hosts,
        rule_count=len(rules),
        path_count=path_count,
        class_name=safe_get(raw, "spec.ingressClassName"),
        addresses=addresses,
    )
    details = f"LoadBalancer: {', '.join(addresses)}" if addresses else ""
    return ResourceStatus(phase="Active", ready=True, details=details), payload


def _configmap(raw: Dict[str, Any]):
    data = raw.get("data") or {}
    binary = raw.get("binaryData") or {}
    keys = sorted(list(data) + list(binary))
    size = sum(len(v) for v in data.values() if v) + sum(len(v) for v in binary.values() if v)
    payload = ConfigMapPayload(keys=keys, size_bytes=size)
    return ResourceStatus(phase="Active", ready=True, details=f"Keys: {len(keys)}"), payload


def _autoscaler(raw: Dict[str, Any]):
    payload = AutoscalerPayload(
        target_kind=safe_get(raw, "spec.scaleTargetRef.kind", ""),
        target_name=safe_get(raw, "spec.scaleTargetRef.name", ""),
        min_replicas=safe_get(raw, "spec.minReplicas", 1),
        max_replicas=safe_get(raw, "spec.maxReplicas", 0),
        current_replicas=safe_get(raw, "status.currentReplicas"),
    )
    return ResourceStatus(phase="Active", ready=True, details=payload.bounds), payload


def _secret(raw: Dict[str, Any]):
    payload = SecretPayload(
        secret_type=raw.get("type") or "Opaque",
        key_count=len(raw.get("data") or {}),
    )
    return ResourceStatus(phase="Active", ready=True, details=f"Type: {payload.secret_type}"), payload


def _ingress_class(raw: Dict[str, Any]):
    annotations = safe_get(raw, "metadata.annotations", {})
    payload = IngressClassPayload(
        controller=safe_get(raw, "spec.controller", ""),
        is_default=annotations.get("ingressclass.kubernetes.io/is-default-class") == "true",
    )
    return ResourceStatus(phase="Active", ready=True, details=f"Controller: {payload.controller}"), payload


def _namespace(raw: Dict[str, Any]):
    phase = safe_get(raw, "status.phase", "Active")
    return ResourceStatus(phase=phase, ready=phase == "Active"), None


_PARSERS: Dict[ResourceKind, Callable[[Dict[str, Any]], Any]] = {
    ResourceKind.DEPLOYMENT: _deployment,
    ResourceKind.POD: _pod,
    ResourceKind.SERVICE: _service,
    ResourceKind.INGRESS: _ingress,
    ResourceKind.CONFIGMAP: _configmap,
    ResourceKind.HPA: _autoscaler,
    ResourceKind.SECRET: _secret,
    ResourceKind.INGRESSCLASS: _ingress_class,
    ResourceKind.NAMESPACE: _namespace,
}


def parse_resource(kind: ResourceKind, raw: Dict[str, Any]) -> Resource:
    """Normalize one raw object of ``kind``

    Raises:
        ParserError: When the object has no name
    """
    metadata = raw.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise ParserError(f"{kind.value} object without metadata.name")

    status: ResourceStatus
    payload: Optional[ResourcePayload]
    status, payload = _PARSERS[kind](raw)

    return Resource(
        kind=kind,
        name=name,
        namespace="" if kind.cluster_scoped else (metadata.get("namespace") or ""),
        labels=metadata.get("labels") or {},
        status=status,
        payload=payload,
    )
