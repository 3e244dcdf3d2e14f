"""Service processor: selector-based exposure of pods"""

from typing import Any, Dict, List

from ..graph.selectors import labels_match_map
from ..models import (
    RelationshipKind,
    Resource,
    ResourceKind,
    format_port_mappings,
)
from ..parsers.base import parse_service_ports
from .base import KindProcessor, Rule


class ServiceProcessor(KindProcessor):
    """Discovers Services and the Pods their selector targets"""

    kind = ResourceKind.SERVICE

    def rules(self) -> List[Rule]:
        return [self.targeted_pods]

    async def targeted_pods(self, service: Resource, raw: Dict[str, Any]) -> None:
        selector = raw.get("spec", {}).get("selector") or {}
        if not selector:
            return
        ports = parse_service_ports(raw)

        def targeted(pod: Resource, _raw) -> bool:
            return pod.namespace == service.namespace and labels_match_map(pod.labels, selector)

        async for pod, _ in self.matching(ResourceKind.POD, targeted):
            description = format_port_mappings(ports, pod.named_ports()) or "no ports"
            self.add_resource(pod)
            self.add_relationship(service, pod, RelationshipKind.TARGETS, description)
