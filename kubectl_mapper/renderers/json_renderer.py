"""
JSON and YAML output renderers for automation and scripting

Both formats serialize the same document: namespaces, resources,
relationships, warnings and graph statistics.
"""

import json
from typing import Any, Dict, List

import yaml

from ..models import DiscoveryResult, DiscoveryWarning, Relationship, Resource, ResourceKind


def _serialize_resource(resource: Resource) -> Dict[str, Any]:
    return {
        "kind": resource.kind.value,
        "namespace": resource.namespace,
        "name": resource.name,
        "labels": dict(sorted(resource.labels.items())),
        "status": resource.status.model_dump(),
        "details": {label: value for label, value in resource.detail_fields()},
    }


def _serialize_relationship(relationship: Relationship) -> Dict[str, Any]:
    return {
        "source": relationship.source.full_name,
        "target": relationship.target.full_name,
        "kind": relationship.kind.value,
        "description": relationship.description,
    }


def _serialize_warning(warning: DiscoveryWarning) -> Dict[str, Any]:
    return {
        "namespace": warning.namespace,
        "kind": warning.kind.value if warning.kind else None,
        "message": warning.message,
    }


def build_document(result: DiscoveryResult) -> Dict[str, Any]:
    """Plain-data document describing one discovery run"""
    graph = result.graph
    resources: List[Resource] = []
    for kind in ResourceKind:
        resources.extend(graph.resources_of_kind(kind))

    return {
        "command": "map",
        "timestamp": result.timestamp.isoformat() + "Z",
        "namespaces": list(result.namespaces),
        "summary": graph.get_graph_stats(),
        "resources": [_serialize_resource(r) for r in resources],
        "relationships": [_serialize_relationship(r) for r in graph.all_relationships()],
        "warnings": [_serialize_warning(w) for w in result.warnings],
        "analysis_duration_seconds": round(result.duration, 3),
    }


class JSONRenderer:
    """Renders discovery results as JSON"""

    def render(self, result: DiscoveryResult) -> str:
        return json.dumps(build_document(result), indent=2, ensure_ascii=False)


class YAMLRenderer:
    """Renders discovery results as YAML"""

    def render(self, result: DiscoveryResult) -> str:
        return yaml.safe_dump(build_document(result), sort_keys=False, allow_unicode=True)
