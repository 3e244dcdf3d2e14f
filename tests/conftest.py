"""
Pytest configuration and shared fixtures for kubectl-mapper tests

FakeProvider serves raw objects from memory and can be told to fail
individual list/get calls, which is how partial failures are exercised.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from kubectl_mapper.collectors.base import NotFound, ResourceProvider
from kubectl_mapper.coordinator import DiscoveryCoordinator
from kubectl_mapper.models import DiscoveryOptions, ResourceKind


class FakeProvider(ResourceProvider):
    """In-memory provider with failure injection"""

    def __init__(self):
        self.objects: Dict[Tuple[ResourceKind, str], List[Dict[str, Any]]] = {}
        self.list_errors: Dict[Tuple[ResourceKind, str], Exception] = {}
        self.get_errors: Dict[Tuple[ResourceKind, str, str], Exception] = {}
        self.calls: List[Tuple] = []

    def add(self, kind: ResourceKind, raw: Dict[str, Any]) -> Dict[str, Any]:
        namespace = "" if kind.cluster_scoped else raw["metadata"].get("namespace", "")
        self.objects.setdefault((kind, namespace), []).append(raw)
        return raw

    def fail_list(self, kind: ResourceKind, namespace: str, error: Exception) -> None:
        self.list_errors[(kind, namespace)] = error

    def fail_get(self, kind: ResourceKind, namespace: str, name: str, error: Exception) -> None:
        self.get_errors[(kind, namespace, name)] = error

    def count(self, method: str, kind: ResourceKind, namespace: Optional[str] = None) -> int:
        return sum(
            1 for call in self.calls
            if call[0] == method and call[1] == kind and (namespace is None or call[2] == namespace)
        )

    async def list(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        self.calls.append(("list", kind, namespace))
        await asyncio.sleep(0)
        error = self.list_errors.get((kind, namespace))
        if error is not None:
            raise error
        return copy.deepcopy(self.objects.get((kind, namespace), []))

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        self.calls.append(("get", kind, namespace, name))
        await asyncio.sleep(0)
        error = self.get_errors.get((kind, namespace, name))
        if error is not None:
            raise error
        for raw in self.objects.get((kind, namespace), []):
            if raw["metadata"]["name"] == name:
                return copy.deepcopy(raw)
        raise NotFound(f'{kind.value.lower()} "{name}" not found')


# Raw object builders


def metadata(name: str, namespace: Optional[str] = "default", labels=None, **extra) -> Dict[str, Any]:
    meta = {"name": name, "labels": dict(labels or {})}
    if namespace is not None:
        meta["namespace"] = namespace
    meta.update(extra)
    return meta


def namespace_obj(name: str) -> Dict[str, Any]:
    return {"metadata": metadata(name, namespace=None), "status": {"phase": "Active"}}


def pod_obj(
    name: str,
    namespace: str = "default",
    labels=None,
    phase: str = "Running",
    ports: Optional[Dict[str, int]] = None,
    spec: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    container = {"name": "app", "image": "nginx:1.25"}
    if ports:
        container["ports"] = [{"name": n, "containerPort": p} for n, p in ports.items()]
    pod_spec = {"containers": [container], "nodeName": "node-1"}
    pod_spec.update(spec or {})
    running = phase == "Running"
    return {
        "metadata": metadata(name, namespace, labels),
        "spec": pod_spec,
        "status": {
            "phase": phase,
            "conditions": [{"type": "Ready", "status": "True" if running else "False"}],
            "containerStatuses": [{"name": "app", "ready": running}],
        },
    }


def deployment_obj(
    name: str,
    namespace: str = "default",
    selector: Optional[Dict[str, Any]] = None,
    replicas: Optional[int] = 1,
    ready: int = 1,
    template_spec: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    spec: Dict[str, Any] = {
        "template": {"spec": template_spec or {"containers": [{"name": "app", "image": "nginx:1.25"}]}},
        "strategy": {"type": "RollingUpdate"},
    }
    if selector is not None:
        spec["selector"] = selector
    if replicas is not None:
        spec["replicas"] = replicas
    return {
        "metadata": metadata(name, namespace),
        "spec": spec,
        "status": {"readyReplicas": ready},
    }


def service_obj(
    name: str,
    namespace: str = "default",
    selector: Optional[Dict[str, str]] = None,
    ports: Optional[List[Dict[str, Any]]] = None,
    service_type: str = "ClusterIP",
) -> Dict[str, Any]:
    spec: Dict[str, Any] = {"type": service_type, "clusterIP": "10.0.0.10", "ports": ports or []}
    if selector is not None:
        spec["selector"] = selector
    return {"metadata": metadata(name, namespace), "spec": spec}


def ingress_obj(
    name: str,
    namespace: str = "default",
    rules: Optional[List[Dict[str, Any]]] = None,
    default_backend: Optional[str] = None,
    tls: Optional[List[Dict[str, Any]]] = None,
    class_name: Optional[str] = None,
) -> Dict[str, Any]:
    spec: Dict[str, Any] = {"rules": rules or []}
    if default_backend:
        spec["defaultBackend"] = {"service": {"name": default_backend, "port": {"number": 80}}}
    if tls is not None:
        spec["tls"] = tls
    if class_name:
        spec["ingressClassName"] = class_name
    return {"metadata": metadata(name, namespace), "spec": spec, "status": {}}


def http_rule(host: str, *paths: Tuple[str, str]) -> Dict[str, Any]:
    """Ingress rule; each path is (path, service name)"""
    return {
        "host": host,
        "http": {
            "paths": [
                {"path": path, "pathType": "Prefix", "backend": {"service": {"name": svc, "port": {"number": 80}}}}
                for path, svc in paths
            ]
        },
    }


def configmap_obj(name: str, namespace: str = "default", data: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {"metadata": metadata(name, namespace), "data": data if data is not None else {"key": "value"}}


def secret_obj(name: str, namespace: str = "default", secret_type: str = "kubernetes.io/tls") -> Dict[str, Any]:
    return {
        "metadata": metadata(name, namespace),
        "type": secret_type,
        "data": {"tls.crt": "Y2VydA==", "tls.key": "a2V5"},
    }


def ingress_class_obj(name: str, controller: str) -> Dict[str, Any]:
    return {"metadata": metadata(name, namespace=None), "spec": {"controller": controller}}


def hpa_obj(
    name: str,
    target: str,
    namespace: str = "default",
    min_replicas: Optional[int] = 2,
    max_replicas: int = 5,
    target_kind: str = "Deployment",
) -> Dict[str, Any]:
    spec: Dict[str, Any] = {
        "scaleTargetRef": {"apiVersion": "apps/v1", "kind": target_kind, "name": target},
        "maxReplicas": max_replicas,
    }
    if min_replicas is not None:
        spec["minReplicas"] = min_replicas
    return {"metadata": metadata(name, namespace), "spec": spec, "status": {"currentReplicas": 2}}


def configmap_consumer_spec(name: str) -> Dict[str, Any]:
    """Pod spec using ConfigMap ``name`` as a volume, via envFrom and via one env var"""
    return {
        "containers": [{
            "name": "app",
            "image": "nginx:1.25",
            "envFrom": [{"configMapRef": {"name": name}}],
            "env": [{"name": "LEVEL", "valueFrom": {"configMapKeyRef": {"name": name, "key": "level"}}}],
        }],
        "volumes": [{"name": "config", "configMap": {"name": name}}],
    }


def populate_web(provider: FakeProvider, namespace: str = "default") -> FakeProvider:
    """Deployment, two pods, service, ingress with TLS and class, configmap and HPA"""
    provider.add(ResourceKind.NAMESPACE, namespace_obj(namespace))
    provider.add(ResourceKind.DEPLOYMENT, deployment_obj(
        "web", namespace,
        selector={"matchLabels": {"app": "web"}},
        replicas=2, ready=2,
        template_spec=configmap_consumer_spec("web-config"),
    ))
    for pod_name in ("web-1", "web-2"):
        provider.add(ResourceKind.POD, pod_obj(pod_name, namespace, {"app": "web"}, ports={"http": 8080}))
    provider.add(ResourceKind.SERVICE, service_obj(
        "web-svc", namespace,
        selector={"app": "web"},
        ports=[{"port": 80, "targetPort": "http", "protocol": "TCP"}],
    ))
    provider.add(ResourceKind.INGRESS, ingress_obj(
        "web-ing", namespace,
        rules=[http_rule("app.example.com", ("/", "web-svc"))],
        tls=[{"hosts": ["app.example.com"], "secretName": "web-tls"}],
        class_name="nginx",
    ))
    provider.add(ResourceKind.SECRET, secret_obj("web-tls", namespace))
    provider.add(ResourceKind.INGRESSCLASS, ingress_class_obj("nginx", "k8s.io/ingress-nginx"))
    provider.add(ResourceKind.CONFIGMAP, configmap_obj("web-config", namespace, {"level": "info"}))
    provider.add(ResourceKind.HPA, hpa_obj("web-hpa", "web", namespace))
    return provider


@pytest.fixture
def provider():
    """Empty in-memory provider"""
    return FakeProvider()


@pytest.fixture
def web_provider():
    """Provider holding the web application in namespace default"""
    return populate_web(FakeProvider())


@pytest.fixture
def discover():
    """Run a full discovery synchronously: discover(provider, namespace=None, **options)"""

    def _discover(provider: ResourceProvider, namespace: Optional[str] = None, excluded=(), **options):
        coordinator = DiscoveryCoordinator(provider, options=DiscoveryOptions(**options))
        return asyncio.run(coordinator.discover(namespace, excluded))

    return _discover
