"""
Unit tests for the kind processors and their relationship rules
"""

import asyncio

import pytest

from conftest import (
    FakeProvider,
    configmap_consumer_spec,
    configmap_obj,
    deployment_obj,
    hpa_obj,
    http_rule,
    ingress_class_obj,
    ingress_obj,
    pod_obj,
    secret_obj,
    service_obj,
)
from kubectl_mapper.collectors.base import PermissionDenied, Unavailable
from kubectl_mapper.models import DiscoveryOptions, RelationshipKind, ResourceKind
from kubectl_mapper.processors.autoscaler import AutoscalerProcessor
from kubectl_mapper.processors.base import ListFailure
from kubectl_mapper.processors.configmap import ConfigMapProcessor
from kubectl_mapper.processors.deployment import DeploymentProcessor
from kubectl_mapper.processors.ingress import IngressProcessor, backend_references
from kubectl_mapper.processors.references import configmap_usage
from kubectl_mapper.processors.registry import DEFAULT_PROCESSORS, build_processors
from kubectl_mapper.processors.service import ServiceProcessor


def run(processor, namespace="default"):
    asyncio.run(processor.process(namespace))
    return processor


def edges(processor, kind=None):
    return [
        (rel.source.name, rel.target.name, rel.description)
        for rel in processor.relationships()
        if kind is None or rel.kind == kind
    ]


class TestDeploymentProcessor:
    """Tests for ownership and ConfigMap usage from Deployments"""

    def test_owns_matching_pods(self, provider):
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj("web", selector={"matchLabels": {"app": "web"}}))
        provider.add(ResourceKind.POD, pod_obj("web-1", labels={"app": "web"}))
        provider.add(ResourceKind.POD, pod_obj("api-1", labels={"app": "api"}))

        processor = run(DeploymentProcessor(provider))

        assert edges(processor, RelationshipKind.OWNS) == [("web", "web-1", "manages pod")]
        kinds = {r.kind for r in processor.resources()}
        assert kinds == {ResourceKind.DEPLOYMENT, ResourceKind.POD}

    def test_missing_selector_owns_nothing(self, provider):
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj("web", selector=None))
        provider.add(ResourceKind.POD, pod_obj("web-1", labels={"app": "web"}))

        processor = run(DeploymentProcessor(provider))
        assert edges(processor, RelationshipKind.OWNS) == []

    def test_invalid_selector_drops_edges_only(self, provider):
        """Test that a malformed selector is not a processing error"""
        selector = {"matchExpressions": [{"key": "app", "operator": "Gt", "values": ["1"]}]}
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj("web", selector=selector))
        provider.add(ResourceKind.POD, pod_obj("web-1", labels={"app": "web"}))

        processor = run(DeploymentProcessor(provider))
        assert edges(processor, RelationshipKind.OWNS) == []
        assert [r.name for r in processor.resources()] == ["web"]

    def test_configmap_used_three_ways_yields_one_edge(self, provider):
        """Test volume, envFrom and env usage collapse into one sorted description"""
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj(
            "web",
            selector={"matchLabels": {"app": "web"}},
            template_spec=configmap_consumer_spec("web-config"),
        ))
        provider.add(ResourceKind.CONFIGMAP, configmap_obj("web-config"))

        processor = run(DeploymentProcessor(provider))

        uses = edges(processor, RelationshipKind.USES)
        assert uses == [("web", "web-config", "environment, environment variable, volume")]

    def test_missing_configmap_is_skipped(self, provider):
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj(
            "web", selector={"matchLabels": {"app": "web"}}, template_spec=configmap_consumer_spec("gone"),
        ))

        processor = run(DeploymentProcessor(provider))
        assert edges(processor, RelationshipKind.USES) == []

    def test_pods_listed_once_per_run(self, provider):
        """Test that the pod list is shared by every deployment's ownership rule"""
        for name in ("a", "b", "c"):
            provider.add(ResourceKind.DEPLOYMENT, deployment_obj(name, selector={"matchLabels": {"app": name}}))
            provider.add(ResourceKind.POD, pod_obj(f"{name}-1", labels={"app": name}))

        processor = run(DeploymentProcessor(provider))

        assert provider.count("list", ResourceKind.POD) == 1
        assert len(edges(processor, RelationshipKind.OWNS)) == 3

    def test_list_failure(self, provider):
        provider.fail_list(ResourceKind.DEPLOYMENT, "default", PermissionDenied("forbidden"))

        processor = DeploymentProcessor(provider)
        with pytest.raises(ListFailure) as exc_info:
            asyncio.run(processor.process("default"))
        assert exc_info.value.kind == ResourceKind.DEPLOYMENT
        assert isinstance(exc_info.value.cause, PermissionDenied)

    def test_neighbour_list_failure_is_optional(self, provider):
        """Test that failing to list pods only drops ownership edges"""
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj("web", selector={"matchLabels": {"app": "web"}}))
        provider.fail_list(ResourceKind.POD, "default", Unavailable("connection refused"))

        processor = run(DeploymentProcessor(provider))
        assert edges(processor) == []
        assert [r.name for r in processor.resources()] == ["web"]


class TestServiceProcessor:
    """Tests for selector-based pod targeting"""

    def test_targets_superset_pods_with_port_mappings(self, provider):
        provider.add(ResourceKind.SERVICE, service_obj(
            "web-svc",
            selector={"app": "web"},
            ports=[{"port": 80, "targetPort": 8080}, {"port": 53, "targetPort": 53, "protocol": "UDP"}],
        ))
        provider.add(ResourceKind.POD, pod_obj("web-1", labels={"app": "web", "tier": "front"}))
        provider.add(ResourceKind.POD, pod_obj("other", labels={"tier": "front"}))

        processor = run(ServiceProcessor(provider))
        assert edges(processor) == [("web-svc", "web-1", "80→8080/TCP, 53→53/UDP")]

    def test_empty_selector_targets_nothing(self, provider):
        provider.add(ResourceKind.SERVICE, service_obj("headless", selector={}, ports=[{"port": 80}]))
        provider.add(ResourceKind.POD, pod_obj("web-1", labels={"app": "web"}))

        processor = run(ServiceProcessor(provider))
        assert edges(processor) == []
        assert provider.count("list", ResourceKind.POD) == 0

    def test_named_target_port_resolved_per_pod(self, provider):
        provider.add(ResourceKind.SERVICE, service_obj(
            "web-svc", selector={"app": "web"}, ports=[{"port": 80, "targetPort": "http"}],
        ))
        provider.add(ResourceKind.POD, pod_obj("web-1", labels={"app": "web"}, ports={"http": 8080}))
        provider.add(ResourceKind.POD, pod_obj("web-2", labels={"app": "web"}, ports={"http": 9090}))

        processor = run(ServiceProcessor(provider))
        assert sorted(edges(processor)) == [
            ("web-svc", "web-1", "80→8080/TCP"),
            ("web-svc", "web-2", "80→9090/TCP"),
        ]


class TestIngressProcessor:
    """Tests for routing, TLS and class rules"""

    def test_two_paths_to_same_service_yield_two_edges(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("web-ing", rules=[
            http_rule("app.example.com", ("/", "web-svc"), ("/api", "web-svc")),
        ]))
        provider.add(ResourceKind.SERVICE, service_obj("web-svc"))

        processor = run(IngressProcessor(provider))

        assert edges(processor, RelationshipKind.EXPOSES) == [
            ("web-ing", "web-svc", "app.example.com/"),
            ("web-ing", "web-svc", "app.example.com/api"),
        ]
        assert provider.count("get", ResourceKind.SERVICE) == 1

    def test_default_backend(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("catch-all", default_backend="fallback"))
        provider.add(ResourceKind.SERVICE, service_obj("fallback"))

        processor = run(IngressProcessor(provider))
        assert edges(processor, RelationshipKind.EXPOSES) == [("catch-all", "fallback", "default backend")]

    def test_missing_backend_service_skipped(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("web-ing", rules=[http_rule("a.example.com", ("/", "gone"))]))

        processor = run(IngressProcessor(provider))
        assert edges(processor) == []
        assert [r.name for r in processor.resources()] == ["web-ing"]

    def test_tls_secret_edge(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("web-ing", tls=[
            {"hosts": ["a.example.com", "b.example.com"], "secretName": "web-tls"},
            {"secretName": "wildcard"},
        ]))
        provider.add(ResourceKind.SECRET, secret_obj("web-tls"))
        provider.add(ResourceKind.SECRET, secret_obj("wildcard"))

        processor = run(IngressProcessor(provider))
        assert sorted(edges(processor, RelationshipKind.USES)) == [
            ("web-ing", "web-tls", "a.example.com, b.example.com"),
            ("web-ing", "wildcard", "TLS"),
        ]

    def test_missing_tls_secret_skipped(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("web-ing", tls=[{"hosts": ["a"], "secretName": "gone"}]))

        processor = run(IngressProcessor(provider))
        assert edges(processor) == []

    def test_ingress_class_edge(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("web-ing", class_name="nginx"))
        provider.add(ResourceKind.INGRESSCLASS, ingress_class_obj("nginx", "k8s.io/ingress-nginx"))

        processor = run(IngressProcessor(provider))

        assert edges(processor, RelationshipKind.USES) == [("web-ing", "nginx", "k8s.io/ingress-nginx")]
        # cluster-scoped lookup
        assert ("get", ResourceKind.INGRESSCLASS, "", "nginx") in provider.calls

    def test_permission_denied_lookup_swallowed_unless_strict(self, provider):
        provider.add(ResourceKind.INGRESS, ingress_obj("web-ing", tls=[{"hosts": ["a"], "secretName": "web-tls"}]))
        provider.add(ResourceKind.SECRET, secret_obj("web-tls"))
        provider.fail_get(ResourceKind.SECRET, "default", "web-tls", PermissionDenied("secrets is forbidden"))

        processor = run(IngressProcessor(provider))
        assert edges(processor) == []

        strict = IngressProcessor(provider, DiscoveryOptions(strict=True))
        with pytest.raises(PermissionDenied):
            asyncio.run(strict.process("default"))

    def test_backend_references_support_legacy_shape(self):
        raw = {"spec": {
            "backend": {"serviceName": "legacy", "servicePort": 80},
            "rules": [{"http": {"paths": [{"backend": {"serviceName": "old-api", "servicePort": 80}}]}}],
        }}
        assert backend_references(raw) == [("legacy", "default backend"), ("old-api", "*")]


class TestConfigMapProcessor:
    """Tests for Pod → ConfigMap usage"""

    def test_pods_using_configmap(self, provider):
        provider.add(ResourceKind.CONFIGMAP, configmap_obj("app-config"))
        provider.add(ResourceKind.CONFIGMAP, configmap_obj("unused"))
        provider.add(ResourceKind.POD, pod_obj("web-1", spec={
            "volumes": [{"name": "cfg", "configMap": {"name": "app-config"}}],
        }))
        provider.add(ResourceKind.POD, pod_obj("plain"))

        processor = run(ConfigMapProcessor(provider))

        assert edges(processor) == [("web-1", "app-config", "volume")]
        assert {r.name for r in processor.resources()} == {"app-config", "unused", "web-1"}

    def test_init_containers_and_projected_volumes(self):
        spec = {
            "initContainers": [{"name": "init", "envFrom": [{"configMapRef": {"name": "boot"}}]}],
            "containers": [{"name": "app"}],
            "volumes": [{"name": "all", "projected": {"sources": [{"configMap": {"name": "bundle"}}]}}],
        }
        usage = configmap_usage(spec)
        assert usage == {"boot": {"environment"}, "bundle": {"volume"}}


class TestAutoscalerProcessor:
    """Tests for HPA scale targets"""

    def test_targets_deployment(self, provider):
        provider.add(ResourceKind.HPA, hpa_obj("web-hpa", "web", min_replicas=2, max_replicas=8))
        provider.add(ResourceKind.DEPLOYMENT, deployment_obj("web", selector={"matchLabels": {"app": "web"}}))

        processor = run(AutoscalerProcessor(provider))
        assert edges(processor) == [("web-hpa", "web", "scales 2-8 replicas")]

    def test_non_deployment_target_ignored(self, provider):
        provider.add(ResourceKind.HPA, hpa_obj("sts-hpa", "db", target_kind="StatefulSet"))

        processor = run(AutoscalerProcessor(provider))
        assert edges(processor) == []
        assert provider.count("get", ResourceKind.DEPLOYMENT) == 0

    def test_missing_deployment_skipped(self, provider):
        provider.add(ResourceKind.HPA, hpa_obj("web-hpa", "gone"))

        processor = run(AutoscalerProcessor(provider))
        assert edges(processor) == []


def test_registry_order():
    """Test the default processor set and its order"""
    processors = build_processors(FakeProvider())
    assert [p.kind for p in processors] == [
        ResourceKind.DEPLOYMENT,
        ResourceKind.SERVICE,
        ResourceKind.INGRESS,
        ResourceKind.CONFIGMAP,
        ResourceKind.HPA,
    ]
    assert len(DEFAULT_PROCESSORS) == 5
