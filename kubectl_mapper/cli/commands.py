"""
Command implementation for ``map``

Builds the provider stack from configuration, runs one discovery pass and
renders the result in the requested format.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import structlog

from ..collectors.base import KubectlProvider, ResourceProvider
from ..config import Config
from ..coordinator import DiscoveryCoordinator
from ..models import DiscoveryResult, DiscoveryWarning
from ..renderers.json_renderer import JSONRenderer, YAMLRenderer
from ..renderers.terminal import TerminalRenderer
from ..resilience import RetryingProvider

logger = structlog.get_logger(__name__)


@dataclass
class CommandResult:
    """Result of command execution"""
    output: str
    warnings_output: str = ""
    exit_code: int = 0
    analysis_duration: float = 0.0
    warnings: List[DiscoveryWarning] = field(default_factory=list)
    result_data: Optional[Any] = None  # raw DiscoveryResult


def build_provider(config: Config) -> ResourceProvider:
    """kubectl provider, wrapped for retries when retries are configured"""
    provider: ResourceProvider = KubectlProvider(
        context=config.get("kubectl.context"),
        kubeconfig=config.get("kubectl.kubeconfig"),
        timeout_seconds=float(config.get("discovery.call_timeout_seconds", 10.0)),
        max_concurrent_calls=int(config.get("discovery.max_concurrent_calls", 8)),
        kubectl_path=config.get("kubectl.path"),
    )
    strategy = config.retry_strategy()
    if strategy.max_retries > 0:
        provider = RetryingProvider(provider, strategy)
    return provider


class MapCommand:
    """Implementation of the map command

    Fatal errors (ConfigurationError, ConnectivityError) propagate to the
    CLI; everything else degrades into warnings on the result.
    """

    def __init__(self, config: Config, provider: Optional[ResourceProvider] = None):
        self.config = config
        self.provider = provider or build_provider(config)
        self.coordinator = DiscoveryCoordinator(self.provider, options=config.discovery_options())

    def render(self, result: DiscoveryResult, output_format: str) -> str:
        if output_format == "json":
            return JSONRenderer().render(result)
        if output_format == "yaml":
            return YAMLRenderer().render(result)
        return TerminalRenderer(self.config.render_options()).render(result)

    async def execute(self, namespace: Optional[str] = None, output_format: str = "text") -> CommandResult:
        """Discover, then render; warnings are rendered separately for text output"""
        result = await self.coordinator.discover(namespace, self.config.exclude_namespaces())

        warnings_output = ""
        if output_format == "text" and result.warnings:
            warnings_output = TerminalRenderer(self.config.render_options()).render_warnings(result.warnings)

        logger.debug("Map command finished", namespaces=len(result.namespaces), warnings=len(result.warnings))
        return CommandResult(
            output=self.render(result, output_format),
            warnings_output=warnings_output,
            analysis_duration=result.duration,
            warnings=list(result.warnings),
            result_data=result,
        )
