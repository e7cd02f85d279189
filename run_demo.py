#!/usr/bin/env python3
"""
Backprop Explainer Demo Script

This script walks through the hand-written two-layer network:
1. Training it on a synthetic regression problem
2. Checking the hand-derived gradients against finite differences
   (and against MLX automatic differentiation when MLX is installed)
3. Showing what happens when the learning rate is too large

Usage:
    python run_demo.py [mode]

    Modes:
        quick      - Train with the default settings and show the loss curve
        gradcheck  - Compare analytic gradients with numerical / MLX gradients
        diverge    - Train with a learning rate that is too large
        full       - All of the above

Example:
    python run_demo.py gradcheck
"""

import argparse
import os
import sys

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from scratchnet.network import (
    backward,
    forward,
    initialize_parameters,
    sum_squared_error,
    sum_squared_error_backward,
)
from scratchnet.network_mlx import MLX_AVAILABLE, value_and_grad_mlx
from scratchnet.training import FitConfig, fit
from scratchnet.utils import (
    RegressionDataConfig,
    is_diverged,
    make_regression_data,
    numerical_gradient,
    summarize_losses,
)


def print_header(text: str):
    """Print a formatted header."""
    print()
    print("=" * 60)
    print(text)
    print("=" * 60)
    print()


def print_section(text: str):
    """Print a section divider."""
    print()
    print("-" * 40)
    print(text)
    print("-" * 40)


def run_quick_demo():
    """Train on the default synthetic problem."""
    print_section("Training (H=32, lr=1e-4, 200 iterations)")

    inputs, targets = make_regression_data(RegressionDataConfig())
    print(f"X: {inputs.shape}, Y: {targets.shape}")
    print("Y = 0.2*x0 - 1.3*x1 - 0.5*x2 + N(0, 1)")
    print()

    result = fit(inputs, targets, FitConfig(), verbose=True)

    print()
    print(f"Initial loss: {result.initial_loss:.4f}")
    print(f"Final loss:   {result.final_loss:.4f}")
    print(f"Ratio:        {result.loss_ratio():.4f}")


def run_gradcheck_demo():
    """Compare the hand-derived gradients with other ways of computing them."""
    print_section("Gradient Check")

    inputs, targets = make_regression_data(
        RegressionDataConfig(num_samples=8, seed=1)
    )
    parameters = initialize_parameters(inputs.shape[1], 5, 1, seed=1)

    cache = forward(parameters, inputs)
    grad_predictions = sum_squared_error_backward(cache.predictions, targets)
    gradients = backward(parameters, cache, grad_predictions).parameter_gradients()

    def loss_fn():
        return sum_squared_error(forward(parameters, inputs).predictions, targets)

    print("Analytic vs central finite differences:")
    for name, param in parameters.get_parameters().items():
        numeric = numerical_gradient(loss_fn, param)
        max_error = np.max(np.abs(numeric - gradients[name]))
        print(f"  {name}: shape {param.shape}, max abs difference {max_error:.2e}")

    print()
    if not MLX_AVAILABLE:
        print("MLX not installed: skipping autodiff comparison.")
        print("To install: pip install mlx (Apple Silicon only)")
        return

    _, mlx_gradients = value_and_grad_mlx(parameters, inputs, targets)
    print("Analytic vs MLX autodiff (float32):")
    for name, grad in gradients.items():
        scale = max(np.max(np.abs(grad)), 1.0)
        rel_error = np.max(np.abs(mlx_gradients[name] - grad)) / scale
        print(f"  {name}: max relative difference {rel_error:.2e}")


def run_diverge_demo(learning_rate: float = 1e-2):
    """Show the loss blowing up when the step size is too large."""
    print_section(f"Divergence (lr={learning_rate:g})")

    inputs, targets = make_regression_data(RegressionDataConfig())
    config = FitConfig(learning_rate=learning_rate, num_iterations=50, log_every=5)

    with np.errstate(over="ignore", invalid="ignore"):
        result = fit(inputs, targets, config)

    for iteration, loss in summarize_losses(result.loss_history, every=5):
        print(f"  Iteration {iteration:>3} | Loss: {loss:.4e}")

    print()
    print(f"Diverged: {is_diverged(result.loss_history)}")
    print("Nothing in the loop guards against this; the learning rate must")
    print("be chosen to suit the data scale.")


def main():
    parser = argparse.ArgumentParser(description="Backprop Explainer Demo")
    parser.add_argument(
        "mode",
        nargs="?",
        default="quick",
        choices=["full", "quick", "gradcheck", "diverge"],
        help="Demo mode to run",
    )
    args = parser.parse_args()

    print_header("Backprop Explainer - Two-Layer Network from Scratch")
    print(f"Mode: {args.mode}")

    if args.mode in ("quick", "full"):
        run_quick_demo()
    if args.mode in ("gradcheck", "full"):
        run_gradcheck_demo()
    if args.mode in ("diverge", "full"):
        run_diverge_demo()

    print("\nDone!")


if __name__ == "__main__":
    main()
