import argparse
import logging
import statistics
import time
from typing import Callable, Iterable, Tuple

import numpy as np
from densemat import Matrix
from densemat.backend import device as backend_device
from densemat.logging_config import setup_logging

logger = logging.getLogger("densemat.benchmarks")


def time_many(
    fn: Callable[[], None], repeats: int, warmup: int = 1
) -> Tuple[float, float, float]:
    # warmup
    for _ in range(warmup):
        fn()
    times = []
    for _ in range(repeats):
        t0 = time.perf_counter()
        fn()
        t1 = time.perf_counter()
        times.append((t1 - t0) * 1000.0)  # ms
    return min(times), statistics.median(times), max(times)


def numpy_baseline_time(
    m: int, n: int, p: int, repeats: int, warmup: int, rng: np.random.Generator
) -> Tuple[float, float, float]:
    a = rng.standard_normal((m, n)).astype(np.float32)
    b = rng.standard_normal((n, p)).astype(np.float32)

    def run() -> None:
        c = a @ b
        # use the result to avoid optimizer elision
        _ = c[0, 0]

    return time_many(run, repeats=repeats, warmup=warmup)


def matrix_time(
    m: int,
    n: int,
    p: int,
    repeats: int,
    warmup: int,
    rng: np.random.Generator,
    device: backend_device.Device,
) -> Tuple[float, float, float]:
    a = Matrix.random(m, n, low=-1.0, high=1.0, rng=rng, device=device)
    b = Matrix.random(n, p, low=-1.0, high=1.0, rng=rng, device=device)

    def run() -> None:
        c = a @ b
        _ = c[0, 0]

    return time_many(run, repeats=repeats, warmup=warmup)


def parse_sizes(s: str) -> Iterable[Tuple[int, int, int]]:
    """
    Parse sizes of the form:
      - single int: k  -> (k, k, k)
      - triple: m,n,p
      - multiple groups separated by spaces,
        e.g. "512 1024 2048" or "1024,1024,2048 2048,2048,2048"
    """
    groups = s.strip().split()
    for g in groups:
        parts = [int(x) for x in g.split(",")]
        if len(parts) == 1:
            k = parts[0]
            yield (k, k, k)
        elif len(parts) == 3:
            yield (parts[0], parts[1], parts[2])
        else:
            raise ValueError(f"Invalid size group: {g}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark matmul: raw NumPy vs densemat Matrix"
    )
    parser.add_argument(
        "--sizes",
        type=str,
        default="128 256 512 1024",
        help='Space-separated sizes. Each can be "k" or "m,n,p".\
              Example: "256 512,512,1024".',
    )
    parser.add_argument(
        "--repeats", type=int, default=5, help="Number of timed runs per case"
    )
    parser.add_argument("--warmup", type=int, default=1, help="Warmup runs per case")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help=f"Device name, one of: {', '.join(backend_device.available_devices())}",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    rng = np.random.default_rng(args.seed)
    dev = (
        backend_device.get_device(args.device)
        if args.device
        else backend_device.default_device()
    )
    logger.info("Benchmarking on %s", dev)

    header = (
        f"{'Size (m,n,p)':>16} | {'NumPy ms (min/med/max)':>28}"
        f" | {'Matrix ms (min/med/max)':>28} | {'overhead (med)':>14}"
    )
    print(header)
    print("-" * len(header))

    for m, n, p in parse_sizes(args.sizes):
        np_min, np_med, np_max = numpy_baseline_time(
            m, n, p, repeats=args.repeats, warmup=args.warmup, rng=rng
        )
        mx_min, mx_med, mx_max = matrix_time(
            m, n, p, repeats=args.repeats, warmup=args.warmup, rng=rng, device=dev
        )
        overhead = mx_med / np_med if np_med > 0 else float("inf")
        print(
            f"{(m, n, p)!s:>16} | {np_min:7.2f}/{np_med:7.2f}/{np_max:7.2f}"
            f" | {mx_min:7.2f}/{mx_med:7.2f}/{mx_max:7.2f} | {overhead:>13.2f}x"
        )


if __name__ == "__main__":
    main()
