"""Deployment processor: owned pods and ConfigMap usage"""

from typing import Any, Dict, List

from ..graph.selectors import labels_match_selector
from ..models import RelationshipKind, Resource, ResourceKind
from .base import KindProcessor, Rule
from .references import configmap_usage, describe_usage, pod_template_spec


class DeploymentProcessor(KindProcessor):
    """Discovers Deployments, the Pods they own and the ConfigMaps they use"""

    kind = ResourceKind.DEPLOYMENT

    def rules(self) -> List[Rule]:
        return [self.owned_pods, self.used_configmaps]

    async def owned_pods(self, deployment: Resource, raw: Dict[str, Any]) -> None:
        selector = raw.get("spec", {}).get("selector")

        def owned(pod: Resource, _raw) -> bool:
            return pod.namespace == deployment.namespace and labels_match_selector(pod.labels, selector)

        async for pod, _ in self.matching(ResourceKind.POD, owned):
            self.add_resource(pod)
            self.add_relationship(deployment, pod, RelationshipKind.OWNS, "manages pod")

    async def used_configmaps(self, deployment: Resource, raw: Dict[str, Any]) -> None:
        usage = configmap_usage(pod_template_spec(raw))

        async def link(name: str) -> None:
            configmap = await self.get_resource(ResourceKind.CONFIGMAP, name)
            self.add_relationship(deployment, configmap, RelationshipKind.USES, describe_usage(usage[name]))

        await self.run_optional(
            self.optional(link(name), f"configmap {name} for {deployment.full_name}")
            for name in sorted(usage)
        )
