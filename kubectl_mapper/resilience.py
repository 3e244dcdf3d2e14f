"""
Bounded retry for the provider boundary

Transient transport failures can be retried with exponential backoff.
Retries are off by default: a failed list is reported once.
"""

import asyncio
from typing import Any, Callable, Dict, List, Tuple, Type

import structlog

from .collectors.base import ResourceProvider, Unavailable
from .models import ResourceKind

logger = structlog.get_logger(__name__)


class RetryStrategy:
    """Exponential backoff retry strategy"""

    def __init__(
        self,
        max_retries: int = 0,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        retry_on: Tuple[Type[BaseException], ...] = (Unavailable,),
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retry_on = retry_on

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number

        Args:
            attempt: Attempt number (0-based)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)

    async def execute(self, func: Callable, *args, **kwargs) -> Any:
        """Execute an async function, retrying only on ``retry_on`` errors

        Raises:
            The last exception once retries are exhausted, or immediately
            for errors outside ``retry_on``
        """
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_retries:
                    if self.max_retries:
                        logger.warning(
                            "All retry attempts exhausted",
                            attempts=attempt + 1,
                            error=str(e),
                        )
                    raise
                delay = self.get_delay(attempt)
                logger.debug(
                    "Retry attempt failed, backing off",
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=delay,
                    error=str(e),
                )
                attempt += 1
                await asyncio.sleep(delay)


class RetryingProvider(ResourceProvider):
    """Wraps a provider so every call goes through a RetryStrategy"""

    def __init__(self, inner: ResourceProvider, strategy: RetryStrategy):
        self.inner = inner
        self.strategy = strategy

    async def list(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        return await self.strategy.execute(self.inner.list, kind, namespace)

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        return await self.strategy.execute(self.inner.get, kind, namespace, name)

    async def list_namespaces(self) -> List[Dict[str, Any]]:
        return await self.strategy.execute(self.inner.list_namespaces)
