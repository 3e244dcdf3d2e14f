"""HorizontalPodAutoscaler processor: scale target resolution"""

from typing import Any, Dict, List

from ..models import RelationshipKind, Resource, ResourceKind
from ..parsers.base import safe_get
from .base import KindProcessor, Rule


class AutoscalerProcessor(KindProcessor):
    kind = ResourceKind.HPA

    def rules(self) -> List[Rule]:
        return [self.scale_target]

    async def scale_target(self, autoscaler: Resource, raw: Dict[str, Any]) -> None:
        target = safe_get(raw, "spec.scaleTargetRef", {})
        if target.get("kind") != ResourceKind.DEPLOYMENT.value or not target.get("name"):
            return
        deployment = await self.get_resource(ResourceKind.DEPLOYMENT, target["name"])
        bounds = dict(autoscaler.detail_fields()).get("Bounds") or autoscaler.status.details
        self.add_relationship(autoscaler, deployment, RelationshipKind.TARGETS, bounds)
