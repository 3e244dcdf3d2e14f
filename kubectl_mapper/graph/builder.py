"""
Resource graph built on python-igraph

Vertex key is the resource identity (kind, namespace, name); edges carry the
relationship kind and description. Edges are never deduplicated, so the
underlying igraph Graph is a directed multigraph.
"""

import threading
from typing import Dict, Iterable, List, Optional

import structlog
from igraph import Graph

from ..models import (
    Relationship,
    RelationshipKind,
    Resource,
    ResourceKind,
    ResourceRef,
)

logger = structlog.get_logger(__name__)


class GraphFrozenError(RuntimeError):
    """Raised when a frozen graph is mutated"""
    pass


class ResourceGraph:
    """Thread-safe deduplicated resource store plus an append-only edge list

    Writers are the discovery coordinator's merges; readers (renderers) only
    run after ``freeze()``.
    """

    def __init__(self):
        self.graph = Graph(directed=True)
        self.resources: Dict[ResourceRef, Resource] = {}
        self.ref_to_vertex: Dict[ResourceRef, int] = {}
        self.vertex_to_ref: Dict[int, ResourceRef] = {}
        self._lock = threading.RLock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Mark the graph read-only"""
        with self._lock:
            self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise GraphFrozenError("resource graph is frozen")

    def _vertex_for(self, ref: ResourceRef) -> int:
        """Return the vertex for ``ref``, creating it if needed (lock held)"""
        vertex_id = self.ref_to_vertex.get(ref)
        if vertex_id is not None:
            return vertex_id

        self.graph.add_vertex(key=ref.full_name, kind=ref.kind.value)
        vertex_id = self.graph.vcount() - 1
        self.ref_to_vertex[ref] = vertex_id
        self.vertex_to_ref[vertex_id] = ref
        return vertex_id

    def add_resource(self, resource: Resource) -> bool:
        """Insert a resource; False if its identity was already present"""
        ref = resource.ref
        with self._lock:
            self._check_mutable()
            if ref in self.resources:
                return False
            self._vertex_for(ref)
            self.resources[ref] = resource

        logger.debug("Added vertex", resource=ref.full_name)
        return True

    def add_relationship(self, relationship: Relationship) -> None:
        """Append an edge unconditionally"""
        with self._lock:
            self._check_mutable()
            source = self._vertex_for(relationship.source)
            target = self._vertex_for(relationship.target)
            self.graph.add_edge(
                source,
                target,
                kind=relationship.kind.value,
                description=relationship.description,
            )

        logger.debug(
            "Added edge",
            source=relationship.source.full_name,
            target=relationship.target.full_name,
            type=relationship.kind.value,
        )

    def merge(self, resources: Iterable[Resource], relationships: Iterable[Relationship]) -> int:
        """Merge a processor's output; returns the number of new resources"""
        added = 0
        with self._lock:
            for resource in resources:
                if self.add_resource(resource):
                    added += 1
            for relationship in relationships:
                self.add_relationship(relationship)
        return added

    def resolve(self, ref: ResourceRef) -> Optional[Resource]:
        return self.resources.get(ref)

    def resources_of_kind(self, kind: ResourceKind) -> List[Resource]:
        """Resources of ``kind`` sorted by (namespace, name)"""
        with self._lock:
            matches = [r for ref, r in self.resources.items() if ref.kind == kind]
        return sorted(matches, key=lambda r: r.ref.sort_key)

    def _edge_to_relationship(self, edge_id: int) -> Relationship:
        edge = self.graph.es[edge_id]
        return Relationship(
            source=self.vertex_to_ref[edge.source],
            target=self.vertex_to_ref[edge.target],
            kind=RelationshipKind(edge["kind"]),
            description=edge["description"],
        )

    def _incident(self, ref: ResourceRef, kind: RelationshipKind, mode: str) -> List[Relationship]:
        with self._lock:
            vertex_id = self.ref_to_vertex.get(ref)
            if vertex_id is None:
                return []
            edge_ids = sorted(self.graph.incident(vertex_id, mode=mode))
            relationships = [self._edge_to_relationship(eid) for eid in edge_ids]
        return [rel for rel in relationships if rel.kind == kind]

    def relationships_from(self, ref: ResourceRef, kind: RelationshipKind) -> List[Relationship]:
        """Outgoing edges of ``kind`` sorted by target (namespace, name)"""
        rels = self._incident(ref, kind, "out")
        return sorted(rels, key=lambda rel: rel.target.sort_key)

    def relationships_to(self, ref: ResourceRef, kind: RelationshipKind) -> List[Relationship]:
        """Incoming edges of ``kind`` sorted by source (namespace, name)"""
        rels = self._incident(ref, kind, "in")
        return sorted(rels, key=lambda rel: rel.source.sort_key)

    def all_relationships(self) -> List[Relationship]:
        """Every edge, ordered by source, kind, target and description"""
        with self._lock:
            relationships = [self._edge_to_relationship(eid) for eid in range(self.graph.ecount())]
        return sorted(
            relationships,
            key=lambda rel: (
                rel.source.kind.value,
                rel.source.sort_key,
                rel.kind.value,
                rel.target.kind.value,
                rel.target.sort_key,
                rel.description,
            ),
        )

    def namespaces(self) -> List[str]:
        with self._lock:
            return sorted({ref.namespace for ref in self.resources if ref.namespace})

    def get_graph_stats(self) -> Dict[str, int]:
        """Get graph statistics"""
        with self._lock:
            vertices = self.graph.vcount()
            return {
                "resources": len(self.resources),
                "vertices": vertices,
                "relationships": self.graph.ecount(),
                "components": len(self.graph.connected_components(mode="weak")) if vertices else 0,
            }
