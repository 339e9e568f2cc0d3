#
# Copyright 2021 Lukas Schmelzeisen
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from logging import getLogger
from os import cpu_count
from queue import Full, Queue
from threading import Event
from typing import (
    Iterable,
    Iterator,
    MutableSequence,
    NamedTuple,
    Optional,
    TypeVar,
    Union,
)

from tqdm import tqdm  # type: ignore
from typing_extensions import Protocol

_LOGGER = getLogger(__name__)

_T_Argument = TypeVar("_T_Argument", contravariant=True)
_T_Return = TypeVar("_T_Return", covariant=True)

_PUT_TIMEOUT = 0.1


class ParallelizeIterFunc(Protocol[_T_Argument, _T_Return]):
    def __call__(self, argument: _T_Argument) -> Iterable[_T_Return]:
        ...


class ParallelizeFailure(NamedTuple):
    argument: object
    exception: BaseException


class _WorkerDone:
    pass


_WORKER_DONE = _WorkerDone()


def parallelize_iter(
    func: ParallelizeIterFunc[_T_Argument, _T_Return],
    arguments: Iterable[_T_Argument],
    *,
    max_workers: Optional[int] = None,
    queue_size: int = 256,
    reraise_exceptions: bool = True,
    progress_bar_desc: Optional[str] = None,
) -> Iterator[_T_Return]:
    """Drain the iterables returned by func for each argument on worker threads.

    Items are yielded in whatever order the workers produce them. If one worker
    fails, the others keep running until they are done; afterwards the first
    failure is re-raised (or, with reraise_exceptions=False, only logged). If the
    consumer stops early, all workers are signalled to stop and close their
    iterators.
    """

    arguments_ = list(arguments)
    if not arguments_:
        return

    if max_workers is None:
        max_workers = cpu_count() or 1
    max_workers = max(1, min(max_workers, len(arguments_)))

    results: Queue[Union[_T_Return, ParallelizeFailure, _WorkerDone]] = Queue(
        maxsize=queue_size
    )
    stop = Event()
    failures: MutableSequence[ParallelizeFailure] = []

    _LOGGER.debug(
        f"Parallelizing over {len(arguments_)} arguments with {max_workers} workers."
    )
    with ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="parallelize"
    ) as pool, tqdm(
        desc=progress_bar_desc,
        total=len(arguments_),
        dynamic_ncols=True,
        disable=progress_bar_desc is None,
    ) as progress_bar:
        for argument in arguments_:
            pool.submit(_drain_worker, func, argument, results, stop)

        try:
            num_workers_running = len(arguments_)
            while num_workers_running:
                item = results.get()
                if isinstance(item, _WorkerDone):
                    num_workers_running -= 1
                    progress_bar.update(1)
                elif isinstance(item, ParallelizeFailure):
                    _LOGGER.error(
                        f"Exception during parallelize for argument {item.argument}: "
                        f"{type(item.exception).__name__} {item.exception}",
                        exc_info=item.exception,
                    )
                    failures.append(item)
                else:
                    yield item
        finally:
            stop.set()

    if failures and reraise_exceptions:
        raise failures[0].exception


def _drain_worker(
    func: ParallelizeIterFunc[_T_Argument, _T_Return],
    argument: _T_Argument,
    results: Queue[Union[_T_Return, ParallelizeFailure, _WorkerDone]],
    stop: Event,
) -> None:
    try:
        if stop.is_set():
            return
        iterator = iter(func(argument))
        try:
            for item in iterator:
                if not _put_unless_stopped(results, item, stop):
                    break
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()
    except BaseException as e:
        _put_unless_stopped(results, ParallelizeFailure(argument, e), stop)
    finally:
        _put_unless_stopped(results, _WORKER_DONE, stop)


def _put_unless_stopped(
    results: Queue[Union[_T_Return, ParallelizeFailure, _WorkerDone]],
    item: Union[_T_Return, ParallelizeFailure, _WorkerDone],
    stop: Event,
) -> bool:
    # Blocks while the queue is full, but gives up once the consumer has stopped, as
    # nobody would ever take the item then.
    while not stop.is_set():
        try:
            results.put(item, timeout=_PUT_TIMEOUT)
            return True
        except Full:
            continue
    return False

