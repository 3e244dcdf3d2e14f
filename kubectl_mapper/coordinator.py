"""
Discovery coordinator

Runs every kind processor for every target namespace, merges the output of
the ones that succeeded into a single ResourceGraph and turns partial
failures into warnings. A run never aborts because one namespace or one
kind failed.
"""

import asyncio
from typing import Iterable, List, Optional, Sequence, Type

import structlog

from .collectors.base import (
    ConnectivityError,
    NotFound,
    ProviderError,
    ResourceProvider,
)
from .concurrency import gather_results
from .graph.builder import ResourceGraph
from .logging_config import PerformanceLogger, log_error_with_context
from .models import DiscoveryOptions, DiscoveryResult, DiscoveryWarning, ResourceKind
from .parsers.base import safe_get
from .processors.base import KindProcessor, ListFailure
from .processors.registry import build_processors
from .validation import NamespaceNotFound

logger = structlog.get_logger(__name__)


class DiscoveryCoordinator:
    """Orchestrates one discovery pass over a set of namespaces"""

    def __init__(
        self,
        provider: ResourceProvider,
        processor_types: Optional[List[Type[KindProcessor]]] = None,
        options: Optional[DiscoveryOptions] = None,
    ):
        self.provider = provider
        self.processor_types = processor_types
        self.options = options or DiscoveryOptions()

    async def resolve_namespaces(
        self,
        explicit: Optional[str] = None,
        excluded: Iterable[str] = (),
    ) -> List[str]:
        """Target namespaces for the run, sorted by name

        Raises:
            NamespaceNotFound: The explicit namespace does not exist
            ConnectivityError: Namespaces cannot be read at all
        """
        excluded = set(excluded)

        if explicit:
            try:
                await self.provider.get(ResourceKind.NAMESPACE, "", explicit)
            except NotFound as e:
                raise NamespaceNotFound(explicit) from e
            except ProviderError as e:
                raise ConnectivityError(f"cannot read namespace {explicit}: {e}") from e
            return [] if explicit in excluded else [explicit]

        try:
            items = await self.provider.list_namespaces()
        except ProviderError as e:
            raise ConnectivityError(f"cannot list namespaces: {e}") from e

        names = {safe_get(item, "metadata.name") for item in items}
        return sorted(name for name in names if name and name not in excluded)

    async def run(self, namespaces: Sequence[str]) -> DiscoveryResult:
        """Discover every namespace concurrently and return the frozen graph"""
        namespaces = sorted(namespaces)
        graph = ResourceGraph()
        warnings: List[DiscoveryWarning] = []
        semaphore = asyncio.Semaphore(self.options.max_concurrent_namespaces)

        with PerformanceLogger("discovery", logger=logger, namespaces=len(namespaces)) as perf:
            results = await gather_results(
                self._discover_namespace(namespace, graph, semaphore) for namespace in namespaces
            )

            for namespace, result in zip(namespaces, results):
                if result.ok:
                    warnings.extend(result.value)
                    continue
                log_error_with_context(result.error, {"namespace": namespace}, logger=logger, level="info")
                warnings.append(DiscoveryWarning(namespace=namespace, message=str(result.error)))

        graph.freeze()
        warnings.sort(key=lambda warning: warning.sort_key)
        stats = graph.get_graph_stats()
        logger.info(
            "Discovery finished",
            namespaces=len(namespaces),
            resources=stats["resources"],
            relationships=stats["relationships"],
            warnings=len(warnings),
        )
        return DiscoveryResult(graph=graph, namespaces=namespaces, warnings=warnings, duration=perf.duration)

    async def discover(self, explicit: Optional[str] = None, excluded: Iterable[str] = ()) -> DiscoveryResult:
        return await self.run(await self.resolve_namespaces(explicit, excluded))

    async def _discover_namespace(
        self,
        namespace: str,
        graph: ResourceGraph,
        semaphore: asyncio.Semaphore,
    ) -> List[DiscoveryWarning]:
        """Run all processors for one namespace, merging only after all joined

        Raises:
            Exception: Any failure other than ListFailure; nothing from the
                namespace has been merged when it propagates
        """
        async with semaphore:
            processors = build_processors(self.provider, self.options, self.processor_types)
            logger.debug("Discovering namespace", namespace=namespace, processors=len(processors))
            results = await gather_results(processor.process(namespace) for processor in processors)

        warnings = []
        succeeded = []
        for processor, result in zip(processors, results):
            if result.ok:
                succeeded.append(processor)
            elif isinstance(result.error, ListFailure):
                failure = result.error
                logger.info(
                    "Could not list kind",
                    namespace=namespace,
                    kind=failure.kind.value,
                    error=str(failure.cause),
                )
                warnings.append(DiscoveryWarning(namespace=namespace, kind=failure.kind, message=str(failure.cause)))
            else:
                raise result.error

        for processor in succeeded:
            graph.merge(processor.resources(), processor.relationships())
        return warnings
