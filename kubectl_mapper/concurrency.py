"""
Structured fan-out helper used at every concurrency level

Spawns one task per awaitable, joins them all and hands back Result values
instead of raising on the first failure. Cancellation of the caller cancels
every child and is re-raised, so a cancelled run never keeps working.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of one fanned-out task"""
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


async def gather_results(awaitables: Iterable[Awaitable[T]]) -> List[Result[T]]:
    """Run awaitables concurrently and collect a Result per awaitable, in order"""
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []

    try:
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    results: List[Result[T]] = []
    for outcome in outcomes:
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            results.append(Result(error=outcome))
        else:
            results.append(Result(value=outcome))
    return results


def first_error(results: Iterable[Result[Any]]) -> Optional[BaseException]:
    for result in results:
        if not result.ok:
            return result.error
    return None


async def checkpoint() -> None:
    """Yield to the event loop so pending cancellation is delivered"""
    await asyncio.sleep(0)
