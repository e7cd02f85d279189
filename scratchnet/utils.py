"""
Utility Functions for Training

This module provides utility functions for:
- Synthetic regression data
- Checkpointing (save/load of network parameters)
- Diagnostics (numerical gradients, divergence checks, loss summaries)

Classes:
    RegressionDataConfig: Settings for the synthetic dataset

Functions:
    make_regression_data: Linear targets plus Gaussian noise
    save_checkpoint: Save parameters and training state
    load_checkpoint: Load parameters and training state
    numerical_gradient: Central finite-difference gradient
    is_diverged: Whether a loss trajectory blew up
    summarize_losses: Loss values at a reporting cadence
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from scratchnet.network import NetworkParameters

PARAMETER_NAMES = ("w1", "b1", "w2", "b2")


@dataclass
class RegressionDataConfig:
    """
    Configuration for the synthetic regression dataset.

    Targets are a fixed linear combination of the input columns plus noise:
        Y = X @ coefficients + noise_std * N(0, 1)

    Attributes:
        num_samples: Number of rows (N)
        coefficients: One coefficient per input feature (D = len)
        noise_std: Standard deviation of the additive noise
        seed: Seed for the data generator
    """

    num_samples: int = 100
    coefficients: Tuple[float, ...] = (0.2, -1.3, -0.5)
    noise_std: float = 1.0
    seed: int = 0


def make_regression_data(
    config: Optional[RegressionDataConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate a synthetic linear regression problem.

    Args:
        config: Dataset settings. Defaults to RegressionDataConfig().
        rng: Random generator. When omitted, one is created from config.seed.

    Returns:
        Tuple of (inputs, targets) with shapes (N, D) and (N, 1)

    Raises:
        ValueError: If num_samples is not positive or no coefficients given
    """
    if config is None:
        config = RegressionDataConfig()
    if config.num_samples <= 0:
        raise ValueError(f"num_samples must be positive, got {config.num_samples}")
    if len(config.coefficients) == 0:
        raise ValueError("coefficients must contain at least one value")

    if rng is None:
        rng = np.random.default_rng(config.seed)

    coefficients = np.asarray(config.coefficients, dtype=np.float64).reshape(-1, 1)
    num_features = coefficients.shape[0]

    inputs = rng.standard_normal((config.num_samples, num_features))
    noise = rng.standard_normal((config.num_samples, 1))
    targets = inputs @ coefficients + config.noise_std * noise

    return inputs, targets


def save_checkpoint(
    parameters: NetworkParameters,
    filepath: str,
    step: int = 0,
    loss_history: Optional[Sequence[float]] = None,
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Save a checkpoint.

    Saves the four parameter arrays, the training step and optionally the
    loss history to a .npz file.

    Args:
        parameters: Network parameters to save
        filepath: Path to save checkpoint (should end in .npz)
        step: Number of iterations trained so far
        loss_history: Optional per-iteration losses
        extra_data: Optional additional scalars (numbers, strings, bools)

    Raises:
        ValueError: If an extra value is not a scalar NumPy can store
            without pickling
    """
    save_dict = {}

    for name, param in parameters.get_parameters().items():
        save_dict[f"param_{name}"] = param

    save_dict["step"] = np.array([step])

    if loss_history is not None:
        save_dict["loss_history"] = np.asarray(loss_history, dtype=np.float64)

    if extra_data is not None:
        for key, value in extra_data.items():
            stored = np.array([value])
            if stored.dtype == object or stored.shape != (1,):
                raise ValueError(
                    f"extra_data['{key}'] must be a scalar, got {type(value).__name__}"
                )
            save_dict[f"extra_{key}"] = stored

    np.savez(filepath, **save_dict)


def load_checkpoint(
    filepath: str,
) -> Tuple[NetworkParameters, int, List[float], Dict[str, Any]]:
    """
    Load a checkpoint.

    Args:
        filepath: Path to checkpoint file

    Returns:
        Tuple of (parameters, step, loss_history, extra_data). loss_history
        is empty if the checkpoint was saved without one, extra_data holds
        the values passed to save_checkpoint as Python scalars.

    Raises:
        KeyError: If a parameter array is missing from the file
    """
    with np.load(filepath) as data:
        missing = [n for n in PARAMETER_NAMES if f"param_{n}" not in data.files]
        if missing:
            raise KeyError(f"Checkpoint {filepath} is missing parameters: {missing}")

        params = {name: data[f"param_{name}"].copy() for name in PARAMETER_NAMES}
        step = int(data["step"][0]) if "step" in data.files else 0
        loss_history = (
            data["loss_history"].tolist() if "loss_history" in data.files else []
        )
        extra_data = {
            key[len("extra_"):]: data[key][0].item()
            for key in data.files
            if key.startswith("extra_")
        }

    return NetworkParameters(**params), step, loss_history, extra_data


def numerical_gradient(
    loss_fn: Callable[[], float], array: np.ndarray, epsilon: float = 1e-5
) -> np.ndarray:
    """
    Estimate d(loss)/d(array) with central differences.

    Each entry of array is nudged by +epsilon and -epsilon in place,
    loss_fn() is re-evaluated, and the entry is restored.

        grad[i] ~ (loss(x + eps) - loss(x - eps)) / (2 * eps)

    Args:
        loss_fn: Zero-argument function that reads array and returns the loss
        array: Array to differentiate with respect to (modified temporarily)
        epsilon: Step size

    Returns:
        Array of the same shape as array
    """
    gradient = np.zeros_like(array, dtype=np.float64)

    for index in np.ndindex(array.shape):
        original = array[index]

        array[index] = original + epsilon
        loss_plus = loss_fn()

        array[index] = original - epsilon
        loss_minus = loss_fn()

        array[index] = original
        gradient[index] = (loss_plus - loss_minus) / (2 * epsilon)

    return gradient


def is_diverged(loss_history: Sequence[float]) -> bool:
    """
    Whether a loss trajectory diverged.

    True if any loss is inf/nan, or the last loss is larger than the first.
    """
    if len(loss_history) == 0:
        return False
    losses = np.asarray(loss_history, dtype=np.float64)
    if not np.all(np.isfinite(losses)):
        return True
    return bool(losses[-1] > losses[0])


def summarize_losses(
    loss_history: Sequence[float], every: int = 10
) -> List[Tuple[int, float]]:
    """
    Pick out (iteration, loss) pairs at a fixed cadence.

    Iterations count from 1, matching the progress lines printed by fit(),
    e.g. every=10 gives iterations 10, 20, 30, ...
    """
    if every <= 0:
        raise ValueError(f"every must be positive, got {every}")
    return [
        (iteration, float(loss_history[iteration - 1]))
        for iteration in range(every, len(loss_history) + 1, every)
    ]


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m scratchnet.utils
# =============================================================================
if __name__ == "__main__":
    import os
    import tempfile

    from scratchnet.training import FitConfig, fit

    print("=" * 70)
    print("UTILITIES DEMO - Data, Checkpointing and Diagnostics")
    print("=" * 70)
    print()

    print("-" * 70)
    print("1. SYNTHETIC DATA")
    print("-" * 70)
    data_config = RegressionDataConfig()
    demo_inputs, demo_targets = make_regression_data(data_config)
    print(f"  X: {demo_inputs.shape}, Y: {demo_targets.shape}")
    print(f"  Y = X @ {list(data_config.coefficients)} + N(0, {data_config.noise_std})")
    print()

    print("-" * 70)
    print("2. TRAIN AND SUMMARIZE")
    print("-" * 70)
    demo_result = fit(demo_inputs, demo_targets, FitConfig(num_iterations=50))
    for demo_iteration, demo_loss in summarize_losses(demo_result.loss_history):
        print(f"  Iteration {demo_iteration:>3} | Loss: {demo_loss:.4f}")
    print(f"  Diverged: {is_diverged(demo_result.loss_history)}")
    print()

    print("-" * 70)
    print("3. CHECKPOINTING")
    print("-" * 70)
    with tempfile.TemporaryDirectory() as tmpdir:
        demo_path = os.path.join(tmpdir, "demo.npz")
        save_checkpoint(
            demo_result.parameters,
            demo_path,
            step=50,
            loss_history=demo_result.loss_history,
            extra_data={"learning_rate": 1e-4},
        )
        loaded, loaded_step, loaded_history, loaded_extra = load_checkpoint(demo_path)
    print(f"  Restored step {loaded_step}, {len(loaded_history)} losses")
    print(f"  Extra data: {loaded_extra}")
    print(f"  w1 identical: {np.array_equal(loaded.w1, demo_result.parameters.w1)}")
