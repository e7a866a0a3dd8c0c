#!/usr/bin/env python3
"""
Quiesce Benchmark Script.

Measures how long watch registration and event normalization take on a
generated tree, to check that large projects start quickly.
Requires Python 3.11+.

Usage:
    python scripts/benchmark.py --dirs 2000 --files 5
"""

import argparse
import os
import re
import statistics
import sys
import tempfile
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, TypeVar

# Run from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from quiesce.models import Operation, RawEvent
from quiesce.utils.logger import configure_logging, get_logger
from quiesce.watcher.normalizer import EventNormalizer
from quiesce.watcher.registry import WatchRegistry


configure_logging()
logger = get_logger("benchmark")

T = TypeVar("T")


class NullObserver:
    """Accepts every watch without touching the OS."""

    def schedule(self, handler: object, path: str, recursive: bool = False) -> SimpleNamespace:
        return SimpleNamespace(path=path)

    def unschedule(self, watch: SimpleNamespace) -> None:
        pass


def benchmark(name: str, func: Callable[[], T], iterations: int = 5) -> tuple[T, dict]:
    """
    Benchmark a function.

    Returns:
        Tuple of (result, stats)
    """
    times = []
    result = None

    for _ in range(iterations):
        start = time.perf_counter()
        result = func()
        elapsed = time.perf_counter() - start
        times.append(elapsed * 1000)  # Convert to ms

    stats = {
        "name": name,
        "iterations": iterations,
        "min_ms": min(times),
        "max_ms": max(times),
        "mean_ms": statistics.mean(times),
        "median_ms": statistics.median(times),
        "stdev_ms": statistics.stdev(times) if len(times) > 1 else 0,
    }

    return result, stats


def print_stats(stats: dict) -> None:
    """Print benchmark statistics."""
    print(f"\n  {stats['name']}:")
    print(f"    Mean:   {stats['mean_ms']:.2f}ms")
    print(f"    Median: {stats['median_ms']:.2f}ms")
    print(f"    Min:    {stats['min_ms']:.2f}ms")
    print(f"    Max:    {stats['max_ms']:.2f}ms")
    if stats["stdev_ms"] > 0:
        print(f"    StdDev: {stats['stdev_ms']:.2f}ms")


def build_tree(root: Path, dirs: int, files: int, fanout: int = 8) -> list[Path]:
    """Create ``dirs`` directories, ``files`` files each, plus an excluded .git."""
    created = [root]
    for i in range(1, dirs):
        parent = created[(i - 1) // fanout]
        path = parent / f"d{i}"
        path.mkdir()
        created.append(path)

    all_files = []
    for directory in created:
        for j in range(files):
            path = directory / f"f{j}.txt"
            path.write_text("x")
            all_files.append(path)

    git = root / ".git" / "objects"
    git.mkdir(parents=True)
    for j in range(dirs):
        (git / f"o{j}").mkdir()

    return all_files


def run_benchmarks(dirs: int, files: int) -> None:
    """Run all benchmarks."""
    print("\n=== Quiesce Benchmarks ===")

    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp) / "proj"
        root.mkdir()
        all_files = build_tree(root, dirs, files)
        print(f"Directories: {dirs}  Files: {len(all_files)}")

        exclude = re.compile(r"\.git")
        registry = WatchRegistry(NullObserver(), handler=object(), exclude=exclude)

        found, stats = benchmark("Discover tree", lambda: registry.discover(str(root)))
        print_stats(stats)
        print(f"    Directories found: {len(found)}")

        _, stats = benchmark("Register tree", lambda: registry.register_tree(str(root)))
        print_stats(stats)

        normalizer = EventNormalizer(registry, exclude=exclude)
        events = [RawEvent(str(p), Operation.WRITE) for p in all_files[:1000]]

        _, stats = benchmark(
            f"Normalize {len(events)} writes",
            lambda: [normalizer.normalize(e) for e in events],
        )
        print_stats(stats)
        per_sec = len(events) / (stats["mean_ms"] / 1000)
        print(f"    Events/sec: {per_sec:.0f}")

        for path in all_files[:1000]:
            os.unlink(path)
        removed = [RawEvent(str(p), Operation.REMOVE) for p in all_files[:1000]]
        _, stats = benchmark(
            f"Normalize {len(removed)} removals",
            lambda: [normalizer.normalize(e) for e in removed],
        )
        print_stats(stats)

    print("\n=== Benchmark Complete ===\n")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run Quiesce performance benchmarks")
    parser.add_argument("--dirs", type=int, default=1000, help="Directories to generate")
    parser.add_argument("--files", type=int, default=3, help="Files per directory")
    args = parser.parse_args()

    if args.dirs < 1 or args.files < 0:
        parser.error("--dirs must be positive and --files not negative")

    logger.info("benchmark_started", dirs=args.dirs, files=args.files)
    run_benchmarks(args.dirs, args.files)


if __name__ == "__main__":
    main()
