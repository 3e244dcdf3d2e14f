"""Ingress processor: backend routing, TLS secrets and ingress class"""

from typing import Any, Dict, List, Optional, Tuple

from ..models import RelationshipKind, Resource, ResourceKind
from ..parsers.base import safe_get
from .base import KindProcessor, Rule

DEFAULT_BACKEND = "default backend"


def _backend_service_name(backend: Dict[str, Any]) -> Optional[str]:
    """Service name of a backend in either the v1 or the legacy shape"""
    return safe_get(backend, "service.name") or backend.get("serviceName") or None


def backend_references(raw: Dict[str, Any]) -> List[Tuple[str, str]]:
    """(service name, description) per backend occurrence, in declared order

    The default backend comes first; then one entry per HTTP path. The same
    service may appear several times.
    """
    spec = raw.get("spec") or {}
    references = []

    default_backend = spec.get("defaultBackend") or spec.get("backend") or {}
    name = _backend_service_name(default_backend)
    if name:
        references.append((name, DEFAULT_BACKEND))

    for rule in spec.get("rules") or []:
        host = rule.get("host") or ""
        for path in safe_get(rule, "http.paths", []):
            name = _backend_service_name(path.get("backend") or {})
            if name:
                references.append((name, f"{host}{path.get('path') or ''}" or "*"))
    return references


def tls_references(raw: Dict[str, Any]) -> List[Tuple[str, str]]:
    """(secret name, covered hosts) per TLS entry"""
    references = []
    for entry in safe_get(raw, "spec.tls", []):
        secret_name = entry.get("secretName")
        if secret_name:
            references.append((secret_name, ", ".join(entry.get("hosts") or []) or "TLS"))
    return references


class IngressProcessor(KindProcessor):
    """Discovers Ingresses and the Services, Secrets and classes they reference"""

    kind = ResourceKind.INGRESS

    def rules(self) -> List[Rule]:
        return [self.backend_services, self.tls_secrets, self.ingress_class]

    async def _link_grouped(
        self,
        ingress: Resource,
        target_kind: ResourceKind,
        relationship: RelationshipKind,
        references: List[Tuple[str, str]],
    ) -> None:
        grouped: Dict[str, List[str]] = {}
        for name, description in references:
            grouped.setdefault(name, []).append(description)

        async def link(name: str) -> None:
            target = await self.get_resource(target_kind, name)
            for description in grouped[name]:
                self.add_relationship(ingress, target, relationship, description)

        await self.run_optional(
            self.optional(link(name), f"{target_kind.value} {name} for {ingress.full_name}")
            for name in grouped
        )

    async def backend_services(self, ingress: Resource, raw: Dict[str, Any]) -> None:
        await self._link_grouped(ingress, ResourceKind.SERVICE, RelationshipKind.EXPOSES, backend_references(raw))

    async def tls_secrets(self, ingress: Resource, raw: Dict[str, Any]) -> None:
        await self._link_grouped(ingress, ResourceKind.SECRET, RelationshipKind.USES, tls_references(raw))

    async def ingress_class(self, ingress: Resource, raw: Dict[str, Any]) -> None:
        class_name = safe_get(raw, "spec.ingressClassName")
        if not class_name:
            return
        ingress_class = await self.get_resource(ResourceKind.INGRESSCLASS, class_name)
        controller = dict(ingress_class.detail_fields()).get("Controller")
        self.add_relationship(ingress, ingress_class, RelationshipKind.USES, controller or "ingress class")
