"""
Reference scanning across pod specs

Deployments (through their pod template) and Pods reference ConfigMaps in
three ways: as a volume, as an ``envFrom`` source and as the source of a
single environment variable.
"""

from typing import Any, Dict, List, Set

from ..parsers.base import safe_get

VOLUME = "volume"
ENVIRONMENT = "environment"
ENVIRONMENT_VARIABLE = "environment variable"


def _containers(pod_spec: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list(pod_spec.get("initContainers") or []) + list(pod_spec.get("containers") or [])


def configmap_usage(pod_spec: Dict[str, Any]) -> Dict[str, Set[str]]:
    """Map each referenced ConfigMap name to the set of usage modes"""
    usage: Dict[str, Set[str]] = {}

    def mark(name, mode):
        if name:
            usage.setdefault(name, set()).add(mode)

    for volume in pod_spec.get("volumes") or []:
        mark(safe_get(volume, "configMap.name"), VOLUME)
        for source in safe_get(volume, "projected.sources", []):
            mark(safe_get(source, "configMap.name"), VOLUME)

    for container in _containers(pod_spec):
        for env_from in container.get("envFrom") or []:
            mark(safe_get(env_from, "configMapRef.name"), ENVIRONMENT)
        for env in container.get("env") or []:
            mark(safe_get(env, "valueFrom.configMapKeyRef.name"), ENVIRONMENT_VARIABLE)

    return usage


def describe_usage(modes: Set[str]) -> str:
    """Distinct usage modes, sorted lexicographically and comma-joined"""
    return ", ".join(sorted(modes))


def pod_template_spec(raw_workload: Dict[str, Any]) -> Dict[str, Any]:
    return safe_get(raw_workload, "spec.template.spec", {})


def pod_spec(raw_pod: Dict[str, Any]) -> Dict[str, Any]:
    return safe_get(raw_pod, "spec", {})
