"""Concurrency-bounded async mapping."""

from typing import Any, Awaitable, Callable, Optional, Sequence

import anyio


class _Skip:
    """Sentinel type for results omitted from a mapped list."""

    def __repr__(self) -> str:
        return "SKIP"


SKIP: Any = _Skip()


def validate_concurrency(concurrency: Optional[int]) -> None:
    """Check a concurrency limit.

    Raises:
        ValueError: If the limit is not None or an integer >= 1.
    """
    if concurrency is None:
        return
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError(
            f"concurrency must be None or an integer >= 1, got {concurrency!r}"
        )


async def bounded_map(
    items: Sequence[Any],
    fn: Callable[[Any, int], Awaitable[Any]],
    *,
    concurrency: Optional[int] = None,
    stop_on_error: bool = True,
) -> list[Any]:
    """Map `items` through `fn` with at most `concurrency` calls in flight.

    Items are dispatched in order from a shared cursor by a pool of
    workers. Results are returned in input order, with `SKIP` results
    removed.

    With `stop_on_error` set, the first failure stops further dispatching;
    calls already in flight still run to completion, then the first error
    is raised. Otherwise every item runs and all failures are raised
    together as an ExceptionGroup.

    Args:
        items: Items to map.
        fn: Async function called as `fn(item, index)`.
        concurrency: Maximum calls in flight. None for unbounded.
        stop_on_error: Stop on the first error instead of collecting.

    Returns:
        Results in input order.
    """
    validate_concurrency(concurrency)

    items = list(items)
    results: list[Any] = [SKIP] * len(items)
    errors: list[tuple[int, Exception]] = []
    cursor = iter(enumerate(items))
    stopped = False

    async def worker() -> None:
        nonlocal stopped
        for index, item in cursor:
            if stopped:
                return
            try:
                results[index] = await fn(item, index)
            except Exception as e:
                errors.append((index, e))
                if stop_on_error:
                    stopped = True
                    return

    worker_count = len(items) if concurrency is None else min(concurrency, len(items))
    async with anyio.create_task_group() as tg:
        for _ in range(worker_count):
            tg.start_soon(worker)

    if errors:
        if stop_on_error:
            raise errors[0][1]
        errors.sort(key=lambda pair: pair[0])
        raise ExceptionGroup(
            f"{len(errors)} of {len(items)} items failed",
            [error for _, error in errors],
        )

    return [result for result in results if result is not SKIP]
