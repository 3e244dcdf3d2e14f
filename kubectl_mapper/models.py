"""
Core data models for kubectl-mapper

These models define the resources, relationships and options that flow
between the processors, the resource graph and the renderers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceKind(str, Enum):
    """Kubernetes resource kinds discovered by kubectl-mapper"""

    NAMESPACE = "Namespace"
    POD = "Pod"
    SERVICE = "Service"
    INGRESS = "Ingress"
    CONFIGMAP = "ConfigMap"
    DEPLOYMENT = "Deployment"
    HPA = "HorizontalPodAutoscaler"
    SECRET = "Secret"
    INGRESSCLASS = "IngressClass"

    @property
    def cluster_scoped(self) -> bool:
        return self in (ResourceKind.NAMESPACE, ResourceKind.INGRESSCLASS)

    @property
    def short_label(self) -> str:
        """Label used in rendered output"""
        if self == ResourceKind.HPA:
            return "HPA"
        return self.value


class RelationshipKind(str, Enum):
    """Directed edge types between two resources"""

    OWNS = "owns"
    USES = "uses"
    EXPOSES = "exposes"
    TARGETS = "targets"
    PROVIDES = "provides"


class ResourceRef(BaseModel):
    """Identity of a resource: two resources are the same iff their refs match"""

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    namespace: str = ""
    name: str

    @property
    def full_name(self) -> str:
        if self.namespace:
            return f"{self.kind.value}/{self.namespace}/{self.name}"
        return f"{self.kind.value}/{self.name}"

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.namespace, self.name)

    def __str__(self) -> str:
        return self.full_name


class ResourceStatus(BaseModel):
    """Normalized status summary, not the raw object status"""

    phase: str = "Unknown"
    ready: bool = False
    details: str = ""


class ResourcePayload(BaseModel):
    """Kind-tagged payload carried for renderer detail lookups

    Each kind contributes its own subclass; renderers only call
    ``detail_fields`` and never inspect the concrete type.
    """

    kind: ResourceKind

    def detail_fields(self) -> List[Tuple[str, str]]:
        return []

    def named_ports(self) -> Dict[str, int]:
        return {}


class DeploymentPayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.DEPLOYMENT
    desired_replicas: int = 1
    ready_replicas: int = 0
    selector: Dict[str, Any] = Field(default_factory=dict)
    strategy: str = ""

    @property
    def replica_summary(self) -> str:
        return f"{self.ready_replicas}/{self.desired_replicas} replicas ready"

    def detail_fields(self) -> List[Tuple[str, str]]:
        fields = [("Replicas", self.replica_summary)]
        if self.strategy:
            fields.append(("Strategy", self.strategy))
        return fields


class PodPayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.POD
    phase: str = "Unknown"
    node_name: str = ""
    ready_containers: int = 0
    total_containers: int = 0
    container_ports: Dict[str, int] = Field(
        default_factory=dict, description="Named container ports"
    )

    def named_ports(self) -> Dict[str, int]:
        return dict(self.container_ports)

    def detail_fields(self) -> List[Tuple[str, str]]:
        fields = [
            ("Phase", self.phase),
            ("Containers", f"{self.ready_containers}/{self.total_containers} ready"),
        ]
        if self.node_name:
            fields.append(("Node", self.node_name))
        return fields


class ServicePort(BaseModel):
    """One declared service port"""

    port: int
    target_port: Optional[str] = None
    protocol: str = "TCP"
    name: str = ""
    node_port: Optional[int] = None

    def resolved_target(self, named_ports: Optional[Dict[str, int]] = None) -> str:
        """Target port as an integer string when it can be resolved"""
        if self.target_port is None or self.target_port == "":
            return str(self.port)
        if self.target_port.isdigit():
            return self.target_port
        if named_ports and self.target_port in named_ports:
            return str(named_ports[self.target_port])
        return self.target_port

    def mapping(self, named_ports: Optional[Dict[str, int]] = None) -> str:
        return f"{self.port}→{self.resolved_target(named_ports)}/{self.protocol}"


def format_port_mappings(
    ports: List[ServicePort], named_ports: Optional[Dict[str, int]] = None
) -> str:
    """Comma-join port mappings in declared order"""
    return ", ".join(port.mapping(named_ports) for port in ports)


class ServicePayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.SERVICE
    service_type: str = "ClusterIP"
    cluster_ip: str = ""
    selector: Dict[str, str] = Field(default_factory=dict)
    ports: List[ServicePort] = Field(default_factory=list)

    def detail_fields(self) -> List[Tuple[str, str]]:
        fields = [("Type", self.service_type)]
        if self.ports:
            fields.append(("Ports", format_port_mappings(self.ports)))
        return fields


class IngressPayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.INGRESS
    hosts: List[str] = Field(default_factory=list)
    rule_count: int = 0
    path_count: int = 0
    class_name: Optional[str] = None
    addresses: List[str] = Field(default_factory=list)

    def detail_fields(self) -> List[Tuple[str, str]]:
        fields = []
        if self.hosts:
            fields.append(("Hosts", ", ".join(self.hosts)))
        fields.append(("Rules", f"{self.rule_count} rules, {self.path_count} paths"))
        if self.addresses:
            fields.append(("LoadBalancer", ", ".join(self.addresses)))
        return fields


class ConfigMapPayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.CONFIGMAP
    keys: List[str] = Field(default_factory=list)
    size_bytes: int = 0

    def detail_fields(self) -> List[Tuple[str, str]]:
        return [("Keys", f"{len(self.keys)} ({self.size_bytes} bytes)")]


class AutoscalerPayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.HPA
    target_kind: str = ""
    target_name: str = ""
    min_replicas: int = 1
    max_replicas: int = 0
    current_replicas: Optional[int] = None

    @property
    def bounds(self) -> str:
        return f"scales {self.min_replicas}-{self.max_replicas} replicas"

    def detail_fields(self) -> List[Tuple[str, str]]:
        fields = [("Target", f"{self.target_kind}/{self.target_name}"), ("Bounds", self.bounds)]
        if self.current_replicas is not None:
            fields.append(("Current", str(self.current_replicas)))
        return fields


class SecretPayload(ResourcePayload):
    """Secret metadata only; secret values are never carried"""

    kind: ResourceKind = ResourceKind.SECRET
    secret_type: str = "Opaque"
    key_count: int = 0

    def detail_fields(self) -> List[Tuple[str, str]]:
        return [("Type", self.secret_type), ("Keys", str(self.key_count))]


class IngressClassPayload(ResourcePayload):
    kind: ResourceKind = ResourceKind.INGRESSCLASS
    controller: str = ""
    is_default: bool = False

    def detail_fields(self) -> List[Tuple[str, str]]:
        fields = [("Controller", self.controller)]
        if self.is_default:
            fields.append(("Default", "yes"))
        return fields


class Resource(BaseModel):
    """One discovered object

    Identity is ``ref``; the payload is opaque to the graph.
    """

    kind: ResourceKind
    name: str
    namespace: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    status: ResourceStatus = Field(default_factory=ResourceStatus)
    payload: Optional[ResourcePayload] = None

    @field_validator("namespace", mode="before")
    @classmethod
    def _namespace_not_none(cls, v):
        return v or ""

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(kind=self.kind, namespace=self.namespace, name=self.name)

    @property
    def full_name(self) -> str:
        return self.ref.full_name

    def detail_fields(self) -> List[Tuple[str, str]]:
        if self.payload is None:
            return []
        return self.payload.detail_fields()

    def named_ports(self) -> Dict[str, int]:
        if self.payload is None:
            return {}
        return self.payload.named_ports()


class Relationship(BaseModel):
    """Directed, typed, described link between two resource identities"""

    source: ResourceRef
    target: ResourceRef
    kind: RelationshipKind
    description: str = Field(..., min_length=1)


class DiscoveryWarning(BaseModel):
    """Non-fatal discovery failure reported alongside partial results"""

    namespace: str
    kind: Optional[ResourceKind] = None
    message: str

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.namespace, self.kind.value if self.kind else "")

    def __str__(self) -> str:
        if self.kind is not None:
            return f"namespace {self.namespace}: could not list {self.kind.value}: {self.message}"
        return f"namespace {self.namespace}: discovery aborted: {self.message}"


class DiscoveryOptions(BaseModel):
    """Options controlling a discovery run"""

    max_concurrent_namespaces: int = Field(default=4, ge=1)
    strict: bool = Field(
        default=False,
        description="Propagate permission/transport failures of cross-reference lookups",
    )


class RenderOptions(BaseModel):
    """Options for the renderers, passed explicitly to their constructors"""

    show_details: bool = True
    colors_enabled: bool = True
    compact: bool = False
    width: int = Field(default=100, ge=40)


class DiscoveryResult(BaseModel):
    """Outcome of one discovery run"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    graph: Any
    namespaces: List[str] = Field(default_factory=list)
    warnings: List[DiscoveryWarning] = Field(default_factory=list)
    duration: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.utcnow)
