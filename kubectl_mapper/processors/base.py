"""
Base class for kind processors

A kind processor lists its primary kind in one namespace, fans out one task
per item and, inside each item, one task per relationship rule. Rules look
up neighbouring objects through the provider; a failed optional lookup only
drops the edge. Failing to list the primary kind is the one error surfaced
to the coordinator, as ListFailure.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import structlog

from ..collectors.base import NotFound, ProviderError, ResourceProvider
from ..concurrency import checkpoint, first_error, gather_results
from ..graph.selectors import SelectorError
from ..models import (
    DiscoveryOptions,
    Relationship,
    RelationshipKind,
    Resource,
    ResourceKind,
    ResourceRef,
)
from ..parsers.base import parse_resource

logger = structlog.get_logger(__name__)

Rule = Callable[[Resource, Dict[str, Any]], Awaitable[None]]


class ListFailure(Exception):
    """Raised when a processor cannot list its own primary kind"""

    def __init__(self, kind: ResourceKind, namespace: str, cause: Exception):
        self.kind = kind
        self.namespace = namespace
        self.cause = cause
        super().__init__(f"failed to list {kind.value} in namespace {namespace}: {cause}")


class KindProcessor(ABC):
    """Discovery and relationship inference for one resource kind"""

    kind: ResourceKind

    def __init__(self, provider: ResourceProvider, options: Optional[DiscoveryOptions] = None):
        self.provider = provider
        self.options = options or DiscoveryOptions()
        self.namespace = ""
        self._resources: Dict[ResourceRef, Resource] = {}
        self._relationships: List[Relationship] = []
        self._lock = threading.Lock()
        self._neighbours: Dict[ResourceKind, asyncio.Future] = {}

    @abstractmethod
    def rules(self) -> List[Rule]:
        """Relationship rules run concurrently for every primary item"""
        pass

    async def process(self, namespace: str) -> None:
        """Discover the primary kind in ``namespace`` and infer its edges

        Raises:
            ListFailure: When the primary kind cannot be listed
        """
        self.namespace = namespace
        try:
            items = await self.provider.list(self.kind, namespace)
        except ProviderError as e:
            raise ListFailure(self.kind, namespace, e) from e

        logger.debug("Listed primary kind", kind=self.kind.value, namespace=namespace, count=len(items))
        try:
            results = await gather_results(self._process_item(raw) for raw in items)
        finally:
            self._cancel_pending_neighbours()

        error = first_error(results)
        if error is not None:
            raise error

    async def _process_item(self, raw: Dict[str, Any]) -> None:
        resource = parse_resource(self.kind, raw)
        self.add_resource(resource)
        await self.run_optional(
            (self.optional(rule(resource, raw), f"{rule.__name__}:{resource.full_name}") for rule in self.rules())
        )

    async def optional(self, awaitable: Awaitable[None], what: str) -> None:
        """Await a cross-reference lookup; optional failures only drop the edge"""
        try:
            await awaitable
        except NotFound as e:
            logger.debug("Referenced object not found", lookup=what, error=str(e))
        except ProviderError as e:
            if self.options.strict:
                raise
            logger.debug("Cross-reference lookup failed", lookup=what, error=str(e))
        except SelectorError as e:
            logger.debug("Invalid label selector", lookup=what, error=str(e))

    async def run_optional(self, awaitables: Iterable[Awaitable[None]]) -> None:
        """Fan out wrapped lookups and re-raise the first unexpected failure"""
        error = first_error(await gather_results(awaitables))
        if error is not None:
            raise error

    async def list_neighbours(self, kind: ResourceKind) -> List[Dict[str, Any]]:
        """List ``kind`` in the current namespace, at most once per run"""
        future = self._neighbours.get(kind)
        if future is None:
            future = asyncio.ensure_future(self.provider.list(kind, self.namespace))
            self._neighbours[kind] = future
        return await future

    def _cancel_pending_neighbours(self) -> None:
        for future in self._neighbours.values():
            if not future.done():
                future.cancel()
            elif not future.cancelled():
                # retrieve so a failed shared lookup is not reported as unhandled
                future.exception()

    async def get_resource(self, kind: ResourceKind, name: str, namespace: Optional[str] = None) -> Resource:
        """Fetch and normalize one referenced object, adding it to the output"""
        ns = "" if kind.cluster_scoped else (self.namespace if namespace is None else namespace)
        raw = await self.provider.get(kind, ns, name)
        resource = parse_resource(kind, raw)
        self.add_resource(resource)
        return resource

    async def matching(self, kind: ResourceKind, predicate: Callable[[Resource, Dict[str, Any]], bool]):
        """Yield (resource, raw) neighbours of ``kind`` satisfying ``predicate``"""
        for raw in await self.list_neighbours(kind):
            await checkpoint()
            resource = parse_resource(kind, raw)
            if predicate(resource, raw):
                yield resource, raw

    def add_resource(self, resource: Resource) -> bool:
        ref = resource.ref
        with self._lock:
            if ref in self._resources:
                return False
            self._resources[ref] = resource
            return True

    def add_relationship(
        self,
        source: Resource,
        target: Resource,
        kind: RelationshipKind,
        description: str,
    ) -> None:
        relationship = Relationship(source=source.ref, target=target.ref, kind=kind, description=description)
        with self._lock:
            self._relationships.append(relationship)

    def resources(self) -> List[Resource]:
        with self._lock:
            return list(self._resources.values())

    def relationships(self) -> List[Relationship]:
        with self._lock:
            return list(self._relationships)
