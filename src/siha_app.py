import os
import sys
import time
from dataclasses import dataclass
from multiprocessing import Queue
from threading import Event, Thread

from rich import print
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.table import Table

from siha_numba import DIGEST_BYTES, EmptyInputError, bytes_to_hex, siha

console = Console()

DEFAULT_MESSAGE = b"Hello World"


def _get_positive_int(name: str, default: int) -> int:
    value_str = os.getenv(name, None)
    if not value_str:
        return default

    try:
        value = int(value_str, 0)
    except ValueError:
        raise ValueError(f"expected {name} to be an integer, got {value_str!r}")

    if value < 1:
        raise ValueError(f"expected {name} to be at least 1, got {value}")

    return value


def get_num_workers() -> int:
    return _get_positive_int("SIHA_WORKERS", os.cpu_count() or 1)


def get_bench_size() -> int:
    return _get_positive_int("SIHA_BENCH_SIZE", 1024)


def get_bench_batch() -> int:
    return _get_positive_int("SIHA_BENCH_BATCH", 64)


def get_bench_seconds() -> float:
    seconds_str = os.getenv("SIHA_BENCH_SECONDS", None)
    if not seconds_str:
        return 10.0

    try:
        seconds = float(seconds_str)
    except ValueError:
        raise ValueError(
            f"expected SIHA_BENCH_SECONDS to be a number, got {seconds_str!r}"
        )

    if seconds <= 0:
        raise ValueError(f"expected SIHA_BENCH_SECONDS to be positive, got {seconds}")

    return seconds


def load_input(arg: str) -> bytes:
    """
    Turn a command line argument into bytes to hash:
    a readable file, a 0x-prefixed hex string, or UTF-8 text
    """

    if os.path.isfile(arg):
        with open(arg, "rb") as f:
            return f.read()

    if arg.startswith("0x"):
        return bytes.fromhex(arg[2:])

    return arg.encode()


def format_elapsed(elapsed: float) -> str:
    hours = int(elapsed // 3600)
    minutes = int((elapsed % 3600) // 60)
    seconds = elapsed % 60
    return f"{hours:02d}h{minutes:02d}m{seconds:05.2f}s"


@dataclass
class BenchParams:
    input_size: int
    batch_size: int


@dataclass
class BatchResult:
    worker_id: int
    num_hashes: int
    num_bytes: int
    elapsed: float
    last_digest: bytes

    @property
    def throughput(self) -> float:
        return self.num_hashes / self.elapsed

    @property
    def bytes_per_sec(self) -> float:
        return self.num_bytes / self.elapsed


def run_batch(worker_id: int, params: BenchParams, counter: int = 0) -> BatchResult:
    """
    Hash a batch of distinct inputs of params.input_size bytes on the calling thread
    """

    start_time = time.perf_counter()

    data = bytearray(os.urandom(params.input_size))
    prefix_len = min(8, params.input_size)
    prefix_mask = (1 << (8 * prefix_len)) - 1

    digest = b""
    for i in range(params.batch_size):
        # stamp a counter so every input in the batch is distinct
        data[:prefix_len] = ((counter + i) & prefix_mask).to_bytes(prefix_len, "big")
        digest = siha(data)

    return BatchResult(
        worker_id=worker_id,
        num_hashes=params.batch_size,
        num_bytes=params.batch_size * params.input_size,
        elapsed=time.perf_counter() - start_time,
        last_digest=digest,
    )


def bench_worker(
    worker_id: int,
    params: BenchParams,
    results_queue: Queue,
    stop: Event,
):
    counter = 0
    while not stop.is_set():
        result = run_batch(worker_id, params, counter)
        counter += params.batch_size
        results_queue.put(result)


class Scoreboard:
    def __init__(self, num_workers: int, params: BenchParams):
        self.params = params
        self.latest_results: list[BatchResult | None] = [None] * num_workers
        self.total_hashes = [0] * num_workers

        self.absolute_start_time = time.perf_counter()
        self.logfile = f"bench-{time.strftime('%Y%m%d%H%M%S')}.txt"
        self._add_to_log("worker,hashes,elapsed,throughput")

    def _add_to_log(self, msg: str):
        with open(self.logfile, "a") as f:
            f.write(msg + "\n")

    def generate_table(self) -> Table:
        table = Table(title=f"siha, {self.params.input_size} byte inputs")
        table.add_column("worker")
        table.add_column("hashes")
        table.add_column("throughput", min_width=12)
        table.add_column("MB/s")
        table.add_column("last digest", min_width=32)

        for i, result in enumerate(self.latest_results):
            if result is None:
                table.add_row(f"{i}", "-", "-", "-", "-")
                continue

            table.add_row(
                f"{i}",
                f"{self.total_hashes[i]:,}",
                f"{result.throughput:,.0f} H/s",
                f"{result.bytes_per_sec / 1e6:,.2f}",
                bytes_to_hex(result.last_digest[:16]) + "...",
            )

        elapsed = time.perf_counter() - self.absolute_start_time
        table.caption = (
            f"total: {sum(self.total_hashes):,} hashes in {format_elapsed(elapsed)}"
        )
        return table

    def update(self, result: BatchResult, live: Live | None = None):
        self.latest_results[result.worker_id] = result
        self.total_hashes[result.worker_id] += result.num_hashes
        self._add_to_log(
            f"{result.worker_id},{result.num_hashes},{result.elapsed:.6f},{result.throughput:.2f}"
        )

        if live is not None:
            live.update(self.generate_table())


def hash_args(args: list[str]) -> Table:
    table = Table()
    table.add_column("input")
    table.add_column(f"siha ({DIGEST_BYTES * 8} bits)", min_width=2 * DIGEST_BYTES)

    for arg in args:
        digest = siha(load_input(arg))
        table.add_row(escape(arg), bytes_to_hex(digest))

    return table


def run_bench():
    try:
        num_workers = get_num_workers()
        duration = get_bench_seconds()
        params = BenchParams(
            input_size=get_bench_size(),
            batch_size=get_bench_batch(),
        )
    except ValueError as e:
        console.print(f"error: {e}")
        sys.exit(1)

    # compile outside of the timed loop
    siha(DEFAULT_MESSAGE)

    print(f"starting {num_workers} workers for {duration}s")

    results_queue = Queue()
    stop = Event()

    threads = []
    for worker_id in range(num_workers):
        t = Thread(
            target=bench_worker,
            args=(worker_id, params, results_queue, stop),
            daemon=True,  # don't block exit
        )
        t.start()
        threads.append(t)

    scoreboard = Scoreboard(num_workers, params)
    console.print(f"writing batch timings to [yellow]{scoreboard.logfile}")

    deadline = time.perf_counter() + duration
    try:
        with Live(
            scoreboard.generate_table(), refresh_per_second=4, console=console
        ) as live:
            while time.perf_counter() < deadline:
                while not results_queue.empty():
                    scoreboard.update(results_queue.get(), live)
                time.sleep(0.05)
    except KeyboardInterrupt:
        console.print("[red]Interrupted by user.[/red]")

    stop.set()
    for t in threads:
        t.join(timeout=1)


def main():
    args = sys.argv[1:]

    if args == ["--bench"]:
        run_bench()
        return

    if not args:
        console.print(bytes_to_hex(siha(DEFAULT_MESSAGE)), soft_wrap=True, highlight=False)
        return

    try:
        console.print(hash_args(args))
    except (EmptyInputError, ValueError) as e:
        console.print(f"error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
