#!/usr/bin/env python3
"""
Timing of the feature extraction stages.

Measures, on random audio, the per-call time of:
  1. Pipeline construction (filter bank)
  2. Power spectrogram
  3. Log-mel spectrogram
  4. MFCC spectrogram

Usage:
    pip install -e .[bench]
    python scripts/benchmark_features.py [--config CONFIG_PATH] [--seconds 1.0] [--iters 50]
"""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Callable, Tuple

import numpy as np

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from sonopy.config import load_config
from sonopy.dsp_core import FeaturePipeline
from sonopy.utils.logging import setup_logging

console = Console()


def time_call(fn: Callable, n_iter: int) -> Tuple[float, float]:
    """Mean and std of fn() in ms, after one warm-up call (JIT compilation)."""
    fn()
    times = []
    for _ in range(n_iter):
        start = time.perf_counter()
        fn()
        times.append((time.perf_counter() - start) * 1000)
    return float(np.mean(times)), float(np.std(times))


def run_benchmark(config_path: str, seconds: float, n_iter: int) -> None:
    config = load_config(config_path)
    rng = np.random.default_rng(0)
    audio = rng.standard_normal(int(seconds * config.sample_rate)).astype(np.float32)

    console.print(f"[bold]Config:[/bold] {config.to_dict()}")
    console.print(f"[bold]Audio:[/bold] {len(audio)} samples ({seconds:.2f} s)")

    pipeline = FeaturePipeline.from_config(config)
    n_frames = pipeline.power_spec(audio).shape[0]

    stages = [
        ("Filter bank", lambda: FeaturePipeline.from_config(config)),
        ("Power spectrogram", lambda: pipeline.power_spec(audio)),
        ("Log-mel spectrogram", lambda: pipeline.mel_spec(audio)),
        ("MFCC spectrogram", lambda: pipeline.mfcc_spec(audio, config.num_coeffs)),
    ]

    table = Table(title=f"Feature Extraction ({n_frames} frames)", box=box.ROUNDED)
    table.add_column("Stage", style="bold")
    table.add_column("Mean (ms)", justify="right")
    table.add_column("Std (ms)", justify="right")
    table.add_column("Per frame (us)", justify="right")

    for name, fn in stages:
        mean_ms, std_ms = time_call(fn, n_iter)
        table.add_row(name, f"{mean_ms:.3f}", f"{std_ms:.3f}", f"{mean_ms / n_frames * 1000:.2f}")

    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="Feature extraction benchmark")
    parser.add_argument(
        '--config',
        type=str,
        default=str(PROJECT_ROOT / 'configs' / 'features.yaml'),
        help='Path to configuration file'
    )
    parser.add_argument('--seconds', type=float, default=1.0, help='Length of the random test signal')
    parser.add_argument('--iters', type=int, default=50, help='Timed calls per stage')
    parser.add_argument('--log-file', type=str, default=None, help='Also write debug logs here')
    args = parser.parse_args()

    setup_logging(log_file=args.log_file, level=logging.DEBUG)

    try:
        run_benchmark(args.config, args.seconds, args.iters)
        console.print(Panel.fit("[bold green]Benchmark completed![/bold green]", border_style="green"))
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise


if __name__ == '__main__':
    main()
