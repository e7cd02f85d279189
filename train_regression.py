#!/usr/bin/env python3
"""
Train Script for the Two-Layer Regression Network

This script fits the hand-written NumPy network to a synthetic linear
regression problem and prints the loss as training progresses.

Usage:
    python train_regression.py
    python train_regression.py --hidden-dim 64 --learning-rate 5e-5 --iterations 500

The script will:
1. Generate X ~ N(0, 1) and Y = 0.2*x0 - 1.3*x1 - 0.5*x2 + noise
2. Initialize W1, W2 from a standard normal, b1, b2 at zero
3. Run full-batch gradient descent, printing the loss every 10 iterations
4. Optionally save a checkpoint

Training Configuration (defaults):
    - Data: 100 samples, 3 features, 1 output
    - Model: 32 hidden units
    - Optimizer: plain gradient descent, learning rate 1e-4, 200 iterations
"""

import argparse
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from scratchnet.training import FitConfig, fit
from scratchnet.utils import (
    RegressionDataConfig,
    is_diverged,
    make_regression_data,
    save_checkpoint,
)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fit a two-layer ReLU network with hand-written backprop"
    )
    defaults = FitConfig()
    data_defaults = RegressionDataConfig()

    parser.add_argument("--hidden-dim", type=int, default=defaults.hidden_dim)
    parser.add_argument(
        "--learning-rate", type=float, default=defaults.learning_rate
    )
    parser.add_argument(
        "--iterations", type=int, default=defaults.num_iterations
    )
    parser.add_argument("--seed", type=int, default=defaults.seed)
    parser.add_argument(
        "--log-every",
        type=int,
        default=defaults.log_every,
        help="Print the loss every N iterations (0 disables)",
    )
    parser.add_argument(
        "--num-samples", type=int, default=data_defaults.num_samples
    )
    parser.add_argument(
        "--coefficients",
        type=float,
        nargs="+",
        default=list(data_defaults.coefficients),
        help="One target coefficient per input feature",
    )
    parser.add_argument(
        "--noise-std", type=float, default=data_defaults.noise_std
    )
    parser.add_argument(
        "--data-seed", type=int, default=data_defaults.seed
    )
    parser.add_argument(
        "--checkpoint",
        type=str,
        default=None,
        help="Save the trained parameters to this .npz path",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main training function."""
    args = parse_args(argv)

    print("=" * 60)
    print("Two-Layer Regression Network (manual backprop)")
    print("=" * 60)
    print()

    # ==================== Configuration ====================
    fit_config = FitConfig(
        hidden_dim=args.hidden_dim,
        learning_rate=args.learning_rate,
        num_iterations=args.iterations,
        seed=args.seed,
        log_every=args.log_every,
    )
    data_config = RegressionDataConfig(
        num_samples=args.num_samples,
        coefficients=tuple(args.coefficients),
        noise_std=args.noise_std,
        seed=args.data_seed,
    )

    # ==================== Data ====================
    inputs, targets = make_regression_data(data_config)
    print(f"Data: X {inputs.shape}, Y {targets.shape}")
    print(f"  Coefficients: {list(data_config.coefficients)}")
    print(f"  Noise std: {data_config.noise_std}")
    print()

    print(f"Hidden units: {fit_config.hidden_dim}")
    print(f"Learning rate: {fit_config.learning_rate:.2e}")
    print(f"Iterations: {fit_config.num_iterations}")
    print()

    # ==================== Training Loop ====================
    print("Starting training...")
    print("-" * 60)

    start = time.time()
    result = fit(inputs, targets, fit_config, verbose=True)
    elapsed = time.time() - start

    print("-" * 60)
    print(f"Training complete in {elapsed:.2f}s")
    print(f"Model parameters: {result.parameters.count_parameters():,}")

    if result.loss_history:
        print(f"  Initial loss: {result.initial_loss:.4f}")
        print(f"  Final loss: {result.final_loss:.4f}")
        print(f"  Final / initial: {result.loss_ratio():.4f}")
        if is_diverged(result.loss_history):
            print("  Loss diverged: try a smaller --learning-rate")

    # ==================== Checkpoint ====================
    if args.checkpoint:
        save_checkpoint(
            result.parameters,
            args.checkpoint,
            step=fit_config.num_iterations,
            loss_history=result.loss_history,
        )
        print(f"Saved checkpoint to {args.checkpoint}")

    return result


if __name__ == "__main__":
    main()
