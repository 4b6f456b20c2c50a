"""Message passing between ranks run as threads, with the classic first exercises.

A small in-process stand-in for a message-passing world: every rank runs the
same function in its own thread and talks to the others through a
``Communicator`` that offers point-to-point sends and receives and a
broadcast.
"""

from __future__ import annotations

import argparse
import copy
import os
import queue
import socket
import threading
from collections.abc import Callable, Sequence
from typing import Any

PTP_TAG = 100
PTP_MESSAGE = "hello!"
BCAST_VALUE = 10
_BCAST_TAG = -1
_POLL_SECONDS = 0.05


class RankAborted(RuntimeError):
    """Raised in a rank that waits on a message after another rank failed."""


class _World:
    """Shared state of one group of ranks: its size and its mailboxes."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("a world needs at least one rank")
        self.size = size
        self.aborted = threading.Event()
        self._lock = threading.Lock()
        self._boxes: dict[tuple[int, int, int], queue.Queue] = {}

    def mailbox(self, source: int, dest: int, tag: int) -> queue.Queue:
        key = (source, dest, tag)
        with self._lock:
            box = self._boxes.get(key)
            if box is None:
                box = self._boxes[key] = queue.Queue()
            return box


class Communicator:
    """One rank's view of the world it belongs to."""

    def __init__(self, rank: int, world: _World) -> None:
        if not 0 <= rank < world.size:
            raise ValueError(f"rank {rank} is outside a world of {world.size}")
        self.rank = rank
        self._world = world

    @property
    def size(self) -> int:
        """Number of ranks in the world."""
        return self._world.size

    def _check_peer(self, peer: int) -> None:
        if not 0 <= peer < self.size:
            raise ValueError(f"rank {peer} is outside a world of {self.size}")

    def _post(self, data: Any, dest: int, tag: int) -> None:
        self._check_peer(dest)
        self._world.mailbox(self.rank, dest, tag).put(copy.deepcopy(data))

    def _take(self, source: int, tag: int) -> Any:
        self._check_peer(source)
        box = self._world.mailbox(source, self.rank, tag)
        while True:
            try:
                return box.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if self._world.aborted.is_set():
                    raise RankAborted(
                        f"rank {self.rank} gave up waiting on rank {source}"
                    ) from None

    def send(self, data: Any, dest: int, tag: int = 0) -> None:
        """Send a copy of ``data`` to rank ``dest`` under ``tag``."""
        if tag < 0:
            raise ValueError("tags must not be negative")
        self._post(data, dest, tag)

    def recv(self, source: int, tag: int = 0) -> Any:
        """Block until a message from ``source`` with ``tag`` arrives; return it."""
        if tag < 0:
            raise ValueError("tags must not be negative")
        return self._take(source, tag)

    def bcast(self, data: Any = None, root: int = 0) -> Any:
        """Return the root's ``data`` on every rank."""
        self._check_peer(root)
        if self.rank == root:
            for dest in range(self.size):
                if dest != root:
                    self._post(data, dest, _BCAST_TAG)
            return data
        return self._take(root, _BCAST_TAG)


def run_ranks(size: int, target: Callable[[Communicator], Any]) -> list[Any]:
    """Run ``target`` once per rank, each in its own thread.

    Returns the values the ranks returned, in rank order. If a rank raises,
    the others stop waiting on messages and the first failure is re-raised.
    """
    world = _World(size)
    results: list[Any] = [None] * size
    errors: list[BaseException | None] = [None] * size

    def work(rank: int) -> None:
        try:
            results[rank] = target(Communicator(rank, world))
        except BaseException as err:  # noqa: BLE001 - handed back to the caller
            errors[rank] = err
            world.aborted.set()

    threads = [
        threading.Thread(target=work, args=(rank,), name=f"rank-{rank}")
        for rank in range(size)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    failures = [err for err in errors if err is not None]
    primary = [err for err in failures if not isinstance(err, RankAborted)]
    if primary or failures:
        raise (primary or failures)[0]
    return results


def hello(comm: Communicator) -> str:
    """Greeting naming this rank and the size of the world."""
    return f"Hello from rank {comm.rank} of {comm.size} total "


def bcast_demo(comm: Communicator) -> str:
    """Broadcast a value from rank 0 and report what this rank holds."""
    root = 0
    data = BCAST_VALUE if comm.rank == root else None
    data = comm.bcast(data, root)
    return f"Rank {comm.rank} has bcast_data = {data}"


def ptp_demo(comm: Communicator) -> str | None:
    """Rank 0 sends a short message to rank 1, which reports it.

    Returns the report on rank 1 and None on every other rank.
    """
    if comm.rank == 0:
        comm.send(PTP_MESSAGE, 1, PTP_TAG)
    if comm.rank == 1:
        message = comm.recv(0, PTP_TAG)
        return f"Process {comm.rank} : {message}"
    return None


def _current_cpu() -> int:
    """Processor the calling thread last ran on, or -1 where unknown."""
    try:
        with open("/proc/thread-self/stat", encoding="ascii") as stat:
            text = stat.read()
        return int(text.rsplit(")", 1)[1].split()[36])
    except (OSError, IndexError, ValueError):
        return -1


def _team(num_threads: int, line: Callable[[int, int], str]) -> list[str]:
    """Run a team of threads together; collect one line per thread, by id."""
    if num_threads <= 0:
        raise ValueError("num_threads must be positive")
    barrier = threading.Barrier(num_threads)
    lines: list[str] = [""] * num_threads

    def work(thread_id: int) -> None:
        barrier.wait()
        lines[thread_id] = line(thread_id, _current_cpu())

    threads = [threading.Thread(target=work, args=(i,)) for i in range(num_threads)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return lines


def hello_threads(num_threads: int) -> list[str]:
    """One line per thread of a team, naming its id and the processor it ran on."""
    return _team(
        num_threads,
        lambda tid, cpu: (
            f"OpenMP thread {tid:03d} of {num_threads:03d} ran on virtual core {cpu:03d}"
        ),
    )


def _hybrid(comm: Communicator, num_threads: int) -> list[str]:
    node = socket.gethostname()
    return _team(
        num_threads,
        lambda tid, cpu: (
            f"MPI {comm.rank:03d} - OMP {tid:03d} - HWT {cpu:03d} - Node {node}"
        ),
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run one of the rank or thread exercises and print what it reports."""
    parser = argparse.ArgumentParser(description="Rank and thread exercises.")
    parser.add_argument(
        "demo", choices=["hello", "bcast", "ptp", "threads", "hybrid"]
    )
    parser.add_argument("--size", type=int, default=2, help="number of ranks")
    parser.add_argument(
        "--threads", type=int, default=os.cpu_count() or 1, help="threads per rank"
    )
    args = parser.parse_args(argv)
    if args.size <= 0:
        parser.error("--size must be positive")
    if args.threads <= 0:
        parser.error("--threads must be positive")

    if args.demo == "threads":
        lines = hello_threads(args.threads)
    elif args.demo == "hybrid":
        per_rank = run_ranks(args.size, lambda comm: _hybrid(comm, args.threads))
        lines = [line for rank_lines in per_rank for line in rank_lines]
    else:
        target = {"hello": hello, "bcast": bcast_demo, "ptp": ptp_demo}[args.demo]
        try:
            lines = [line for line in run_ranks(args.size, target) if line is not None]
        except ValueError as err:
            print(f"Error: {err}")
            return 1
    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())