"""Batch loading with worker threads and async prefetching."""
from __future__ import annotations
import os
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from queue import Empty, Full, Queue
from threading import Event, Thread
from typing import Any, Callable, Iterator, List, Optional

from .containers import getobs, numobs


def collate(samples: List[Any]):
    """Stack a list of observations into a batch.

    Arrays and numbers are stacked along a new first axis; tuples and dicts
    are collated field by field; anything else is returned as a list.
    """
    first = samples[0]
    if isinstance(first, tuple):
        return tuple(collate([s[i] for s in samples]) for i in range(len(first)))
    if isinstance(first, dict):
        return {k: collate([s[k] for s in samples]) for k in first}
    if isinstance(first, np.ndarray):
        return np.stack(samples)
    if isinstance(first, (int, float, np.number, bool, np.bool_)):
        return np.asarray(samples)
    return list(samples)


def uncollate(batch) -> List[Any]:
    """Inverse of `collate` for arrays and tuples of arrays."""
    if isinstance(batch, tuple):
        parts = [uncollate(b) for b in batch]
        return [tuple(p[i] for p in parts) for i in range(len(parts[0]))]
    if isinstance(batch, dict):
        parts = {k: uncollate(v) for k, v in batch.items()}
        n = len(next(iter(parts.values())))
        return [{k: v[i] for k, v in parts.items()} for i in range(n)]
    return [batch[i] for i in range(len(batch))]


class DataLoader:
    """Iterates over batches of ``data``.

    Observations are loaded (and therefore encoded) by a thread pool; a
    background producer keeps up to ``prefetch`` batches queued. Closing an
    iterator before it is exhausted stops the producer and its workers.

    Attributes:
        data: Container with ``len`` and integer indexing
        batchsize: Number of observations per batch
        collate: Function turning a list of observations into a batch
    """

    def __init__(
        self,
        data,
        batchsize: int = 16,
        shuffle: bool = True,
        partial: bool = True,
        collate: Callable[[List[Any]], Any] = collate,
        num_threads: Optional[int] = None,
        prefetch: int = 2,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if batchsize < 1:
            raise ValueError(f"batchsize must be positive, got {batchsize}")
        self.data = data
        self.batchsize = batchsize
        self.shuffle = shuffle
        self.partial = partial
        self.collate = collate
        self.num_threads = num_threads if num_threads is not None else min(8, os.cpu_count() or 2)
        self.prefetch = prefetch
        self.rng = rng or np.random.default_rng()

    def __len__(self) -> int:
        n = numobs(self.data)
        if self.partial:
            return (n + self.batchsize - 1) // self.batchsize
        return n // self.batchsize

    def _batch_starts(self) -> range:
        n = numobs(self.data)
        stop = n if self.partial else n - n % self.batchsize
        return range(0, stop, self.batchsize)

    def __iter__(self) -> Iterator[Any]:
        n = numobs(self.data)
        idx = self.rng.permutation(n) if self.shuffle else np.arange(n)

        def load_batch(start: int):
            end = min(start + self.batchsize, n)
            return self.collate([getobs(self.data, i) for i in idx[start:end]])

        if self.prefetch <= 0:
            for start in self._batch_starts():
                yield load_batch(start)
            return

        queue: Queue = Queue(maxsize=self.prefetch)
        stop = Event()

        def put(item) -> bool:
            while not stop.is_set():
                try:
                    queue.put(item, timeout=0.1)
                    return True
                except Full:
                    pass
            return False

        def producer():
            executor = ThreadPoolExecutor(max_workers=self.num_threads)
            try:
                for start in self._batch_starts():
                    if not put(executor.submit(load_batch, start)):
                        break
                put(None)  # Sentinel
            finally:
                executor.shutdown(wait=True, cancel_futures=True)

        thread = Thread(target=producer, daemon=True)
        thread.start()
        try:
            while True:
                item = queue.get()
                if item is None:
                    break
                yield item.result()
        finally:
            # also reached when the consumer stops early or a batch fails to load
            stop.set()
            while True:
                try:
                    item = queue.get_nowait()
                except Empty:
                    break
                if item is not None:
                    item.cancel()
            thread.join()

    def __repr__(self):
        return f"DataLoader({numobs(self.data)} observations, batchsize={self.batchsize}, shuffle={self.shuffle})"
