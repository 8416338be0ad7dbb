# Copyright 2025 jiangyouhua
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

"""
Main-context dispatch for progress callbacks.

Download progress is produced on a worker thread, but UI code usually must
only be touched from the host's main thread. A Dispatcher moves a callable
onto that context. Two implementations are provided:

- ImmediateDispatcher: runs the callable on the calling thread (default,
  suitable for CLIs and tests).
- QueueDispatcher: collects callables until the host's main loop calls
  ``drain()`` on its own thread.

Example:
    Hooking a QueueDispatcher into a main loop:

        dispatcher = QueueDispatcher()
        client = NetworkClient(dispatcher=dispatcher)
        client.download(url, on_done, progress=progress_bar.set_fraction)
        while running:
            dispatcher.drain()
            ...
"""

from __future__ import annotations

import queue
from typing import Callable, Protocol


class Dispatcher(Protocol):
    """Something that can run a callable on the main context."""

    def post(self, fn: Callable[[], None]) -> None: ...


class ImmediateDispatcher:
    """Runs posted callables immediately on the posting thread."""

    def post(self, fn: Callable[[], None]) -> None:
        fn()


class QueueDispatcher:
    """Thread-safe FIFO of callables, drained by the main thread."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()

    def post(self, fn: Callable[[], None]) -> None:
        self._queue.put(fn)

    def drain(self) -> int:
        """Run every queued callable in order; return how many ran."""
        ran = 0
        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return ran
            fn()
            ran += 1

    def pending(self) -> bool:
        return not self._queue.empty()
