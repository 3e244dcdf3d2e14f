"""
kubectl-mapper: layered maps of Kubernetes resource relationships

Discovers Deployments, Pods, Services, Ingresses, ConfigMaps and their
satellites, infers the typed relationships between them and renders the
result as a deterministic Ingress → Service → Workload → Storage map.
"""

__version__ = "1.0.0"
__author__ = "kubectl-mapper team"
__description__ = "Layered map of Kubernetes resource relationships"
