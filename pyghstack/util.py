from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Sequence, TypeVar

T = TypeVar('T')
R = TypeVar('R')


def join_all(fn: Callable[[T], R], items: Sequence[T], concurrency: int = 0) -> List[R]:
    """Run fn over items concurrently and wait for every task to finish.

    Results come back in the same order as items. Once all tasks are done,
    the first failure (in submission order) is re-raised; nothing is
    cancelled early, so a single rate-limited call does not abort its
    siblings half-way.

    Args:
        fn: Function applied to each item
        items: Inputs, one task each
        concurrency: Max worker threads, 0 for the executor default
    """
    if not items:
        return []
    max_workers = concurrency if concurrency > 0 else None
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures: List[Future[R]] = [executor.submit(fn, item) for item in items]
        wait(futures)
    for future in futures:
        error = future.exception()
        if error is not None:
            raise error
    return [future.result() for future in futures]
