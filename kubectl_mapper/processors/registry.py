"""Default set of kind processors"""

from typing import List, Optional, Type

from ..collectors.base import ResourceProvider
from ..models import DiscoveryOptions
from .autoscaler import AutoscalerProcessor
from .base import KindProcessor
from .configmap import ConfigMapProcessor
from .deployment import DeploymentProcessor
from .ingress import IngressProcessor
from .service import ServiceProcessor

DEFAULT_PROCESSORS: List[Type[KindProcessor]] = [
    DeploymentProcessor,
    ServiceProcessor,
    IngressProcessor,
    ConfigMapProcessor,
    AutoscalerProcessor,
]


def build_processors(
    provider: ResourceProvider,
    options: Optional[DiscoveryOptions] = None,
    processor_types: Optional[List[Type[KindProcessor]]] = None,
) -> List[KindProcessor]:
    """Fresh processor instances for one namespace"""
    return [processor_type(provider, options) for processor_type in (processor_types or DEFAULT_PROCESSORS)]
