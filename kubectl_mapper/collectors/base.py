"""
Cluster resource provider contract and the kubectl-backed implementation

Providers are the only place where discovery blocks on I/O. Every call is
async, time-bounded and raises one of the ProviderError subclasses so the
processors can decide whether a failure is a warning or a skipped edge.
"""

import asyncio
import json
import shutil
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import structlog
from async_timeout import timeout

from ..models import ResourceKind

logger = structlog.get_logger(__name__)


class ProviderError(Exception):
    """Base exception for provider errors"""
    pass


class NotFound(ProviderError):
    """Raised when a requested object does not exist"""
    pass


class PermissionDenied(ProviderError):
    """Raised when RBAC permissions are insufficient"""
    pass


class Unavailable(ProviderError):
    """Raised on network/transport failures and timeouts"""
    pass


class ConnectivityError(Exception):
    """Raised when the control plane cannot be reached at all (fatal)"""
    pass


# kubectl resource arguments, fully qualified to avoid ambiguity with CRDs
KUBECTL_RESOURCES: Dict[ResourceKind, str] = {
    ResourceKind.NAMESPACE: "namespaces",
    ResourceKind.POD: "pods",
    ResourceKind.SERVICE: "services",
    ResourceKind.INGRESS: "ingresses.networking.k8s.io",
    ResourceKind.CONFIGMAP: "configmaps",
    ResourceKind.DEPLOYMENT: "deployments.apps",
    ResourceKind.HPA: "horizontalpodautoscalers.autoscaling",
    ResourceKind.SECRET: "secrets",
    ResourceKind.INGRESSCLASS: "ingressclasses.networking.k8s.io",
}

_PERMISSION_PHRASES = ("forbidden", "unauthorized", "access denied", "permission denied")
# server-side NotFound carries the "(NotFound)" marker; a bare "not found" is
# also printed for client-side problems such as an unknown context
_NOT_FOUND_PHRASES = ("(notfound)", "doesn't have a resource type")
_CLIENT_CONFIG_PHRASES = (
    "context was not found",
    "no configuration has been provided",
    "invalid configuration",
    "error loading config file",
    "cluster has no server defined",
    "error: stat ",
)
_UNAVAILABLE_PHRASES = (
    "unable to connect",
    "connection refused",
    "i/o timeout",
    "timeout",
    "temporarily unavailable",
    "no such host",
    "tls handshake",
    "service unavailable",
)


def classify_kubectl_error(stderr: str) -> ProviderError:
    """Map kubectl stderr to the provider error taxonomy"""
    lower = stderr.lower()
    if any(phrase in lower for phrase in _CLIENT_CONFIG_PHRASES):
        return ProviderError(stderr.strip())
    if any(phrase in lower for phrase in _PERMISSION_PHRASES):
        return PermissionDenied(stderr.strip())
    if any(phrase in lower for phrase in _NOT_FOUND_PHRASES):
        return NotFound(stderr.strip())
    if any(phrase in lower for phrase in _UNAVAILABLE_PHRASES):
        return Unavailable(stderr.strip())
    return ProviderError(stderr.strip() or "Unknown kubectl error")


class ResourceProvider(ABC):
    """Typed list/get operations over resource kinds, scoped by namespace"""

    @abstractmethod
    async def list(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        """List raw objects of ``kind`` in ``namespace``

        Raises:
            ProviderError: When the list cannot be obtained
        """
        pass

    @abstractmethod
    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        """Get one raw object

        Raises:
            NotFound: When the object does not exist
            ProviderError: On any other failure
        """
        pass

    async def list_namespaces(self) -> List[Dict[str, Any]]:
        return await self.list(ResourceKind.NAMESPACE, "")


class KubectlProvider(ResourceProvider):
    """Provider backed by ``kubectl get -o json`` subprocesses

    Calls are bounded by a per-call timeout and a semaphore so that the
    processors' fan-out cannot spawn an unbounded number of processes.
    """

    def __init__(
        self,
        context: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        timeout_seconds: float = 10.0,
        max_concurrent_calls: int = 8,
        kubectl_path: Optional[str] = None,
    ):
        self.context = context
        self.kubeconfig = kubeconfig
        self.timeout_seconds = timeout_seconds
        self.max_concurrent_calls = max_concurrent_calls
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._kubectl_path = kubectl_path

    @property
    def kubectl_path(self) -> str:
        """Find and cache kubectl executable path"""
        if self._kubectl_path is None:
            path = shutil.which("kubectl")
            if path is None:
                raise ConnectivityError("kubectl not found in PATH")
            self._kubectl_path = path
        return self._kubectl_path

    def _call_slots(self) -> asyncio.Semaphore:
        # created on first use so it belongs to the loop running the calls
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent_calls)
        return self._semaphore

    def _global_args(self) -> List[str]:
        args = []
        if self.context:
            args.extend(["--context", self.context])
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])
        return args

    def _scope_args(self, kind: ResourceKind, namespace: str) -> List[str]:
        if kind.cluster_scoped or not namespace:
            return []
        return ["--namespace", namespace]

    async def list(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        args = ["get", KUBECTL_RESOURCES[kind]] + self._scope_args(kind, namespace)
        data = await self._run_kubectl(args)
        return data.get("items", []) or []

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        args = ["get", KUBECTL_RESOURCES[kind], name] + self._scope_args(kind, namespace)
        return await self._run_kubectl(args)

    async def _run_kubectl(self, args: List[str]) -> Dict[str, Any]:
        """Run one kubectl command and parse its JSON output

        Raises:
            Unavailable: When the command times out or cannot reach the server
            PermissionDenied: When RBAC permissions are insufficient
            NotFound: When the object or resource type does not exist
            ProviderError: For any other failure
        """
        cmd = [self.kubectl_path] + args + self._global_args() + ["-o", "json"]

        async with self._call_slots():
            logger.debug("Running kubectl command", cmd=cmd, timeout=self.timeout_seconds)
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                async with timeout(self.timeout_seconds):
                    stdout, stderr = await process.communicate()
            except asyncio.TimeoutError:
                raise Unavailable(f"kubectl timed out after {self.timeout_seconds}s: {' '.join(args)}")
            finally:
                if process.returncode is None:
                    process.kill()
                    await asyncio.shield(process.wait())

        if process.returncode != 0:
            raise classify_kubectl_error(stderr.decode(errors="replace") if stderr else "")

        output = stdout.decode(errors="replace")
        if not output.strip():
            return {}
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise ProviderError(f"Failed to parse kubectl JSON output: {e}")
