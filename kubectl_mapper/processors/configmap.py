"""ConfigMap processor: reverse usage from pods"""

from typing import Any, Dict, List

from ..concurrency import checkpoint
from ..models import RelationshipKind, Resource, ResourceKind
from ..parsers.base import parse_resource
from .base import KindProcessor, Rule
from .references import configmap_usage, describe_usage, pod_spec


class ConfigMapProcessor(KindProcessor):
    """Discovers ConfigMaps and the Pods that consume them

    Deployment usage is inferred from the pod template by the Deployment
    processor, so only Pod edges originate here.
    """

    kind = ResourceKind.CONFIGMAP

    def rules(self) -> List[Rule]:
        return [self.using_pods]

    async def using_pods(self, configmap: Resource, raw: Dict[str, Any]) -> None:
        for pod_raw in await self.list_neighbours(ResourceKind.POD):
            await checkpoint()
            modes = configmap_usage(pod_spec(pod_raw)).get(configmap.name)
            if not modes:
                continue
            pod = parse_resource(ResourceKind.POD, pod_raw)
            if pod.namespace != configmap.namespace:
                continue
            self.add_resource(pod)
            self.add_relationship(pod, configmap, RelationshipKind.USES, describe_usage(modes))
