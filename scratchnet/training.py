"""
Training Loop for the Regression Network

Fits the two-layer network to fixed data with full-batch gradient descent.
Each iteration runs forward -> loss -> backward -> update in that order, and
every iteration starts from the parameters the previous one left behind.

The loop has no safety net: if the learning rate is too large the loss
overflows to inf/nan and those values are recorded like any other. Callers
pick learning_rate and num_iterations.

Classes:
    FitConfig: Hyperparameters for a training run
    FitResult: Trained parameters and the loss trajectory

Functions:
    train_step: One forward/backward/update iteration
    prepare_data: Validate and convert inputs and targets
    check_parameters: Validate caller-supplied parameters
    report_progress: Progress callback and print at a fixed cadence
    fit: Full training run
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

from scratchnet.network import (
    Gradients,
    NetworkParameters,
    backward,
    forward,
    initialize_parameters,
    sum_squared_error,
    sum_squared_error_backward,
)
from scratchnet.optimizer import SGD
from scratchnet.tensor_ops import as_matrix

ProgressCallback = Callable[[int, float], None]


@dataclass
class FitConfig:
    """
    Configuration for a training run.

    Attributes:
        hidden_dim: Number of hidden units (H)
        learning_rate: Gradient descent step size
        num_iterations: Number of full-batch iterations (0 is allowed)
        seed: Seed for parameter initialization
        log_every: Report the loss every this many iterations (0 disables)

    The defaults reproduce the classic example: 32 hidden units,
    learning rate 1e-4, 200 iterations, a report every 10 iterations.
    """

    hidden_dim: int = 32
    learning_rate: float = 1e-4
    num_iterations: int = 200
    seed: int = 0
    log_every: int = 10

    def validate(self) -> None:
        """Raise ValueError on out-of-range hyperparameters."""
        if self.hidden_dim <= 0:
            raise ValueError(f"hidden_dim must be positive, got {self.hidden_dim}")
        if self.learning_rate <= 0:
            raise ValueError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.num_iterations < 0:
            raise ValueError(
                f"num_iterations must be non-negative, got {self.num_iterations}"
            )
        if self.log_every < 0:
            raise ValueError(f"log_every must be non-negative, got {self.log_every}")


@dataclass
class FitResult:
    """
    Outcome of a training run.

    Attributes:
        parameters: Parameters after the last iteration
        loss_history: Loss of every iteration, computed before that
            iteration's update
    """

    parameters: NetworkParameters
    loss_history: List[float] = field(default_factory=list)

    @property
    def initial_loss(self) -> Optional[float]:
        return self.loss_history[0] if self.loss_history else None

    @property
    def final_loss(self) -> Optional[float]:
        return self.loss_history[-1] if self.loss_history else None

    def loss_ratio(self) -> float:
        """Final loss divided by initial loss (nan without history)."""
        if not self.loss_history:
            return float("nan")
        return self.loss_history[-1] / self.loss_history[0]


def train_step(
    parameters: NetworkParameters,
    optimizer: SGD,
    inputs: np.ndarray,
    targets: np.ndarray,
) -> Tuple[float, Gradients]:
    """
    Perform a single training step.

    Args:
        parameters: Network parameters (updated in place)
        optimizer: SGD optimizer initialized with parameters.get_parameters()
        inputs: Input matrix, shape (N, D)
        targets: Target matrix, shape (N, O)

    Returns:
        Tuple of (loss before the update, gradients used for the update)
    """
    # Forward pass
    cache = forward(parameters, inputs)

    # Compute loss
    loss = sum_squared_error(cache.predictions, targets)

    # Backward pass
    grad_predictions = sum_squared_error_backward(cache.predictions, targets)
    gradients = backward(parameters, cache, grad_predictions)

    # Update parameters
    optimizer.step(gradients.parameter_gradients())

    return loss, gradients


def prepare_data(inputs, targets) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert inputs and targets to float64 matrices with matching row counts.

    Raises:
        ValueError: If either is not 2-D or the row counts differ
    """
    inputs = as_matrix(inputs, name="inputs")
    targets = as_matrix(targets, name="targets")
    if inputs.shape[0] != targets.shape[0]:
        raise ValueError(
            f"inputs has {inputs.shape[0]} rows but targets has {targets.shape[0]}"
        )
    return inputs, targets


def check_parameters(
    parameters: NetworkParameters, input_dim: int, hidden_dim: int, output_dim: int
) -> None:
    """
    Validate caller-supplied parameters before training on them.

    Biases given as (1, K) row matrices are replaced by (K,) views of the
    same memory, so updates still reach the caller's arrays.

    Raises:
        ValueError: If a parameter is not float64 or has the wrong shape
    """
    for name in ("b1", "b2"):
        bias = getattr(parameters, name)
        if bias.ndim == 2 and bias.shape[0] == 1:
            setattr(parameters, name, bias.reshape(-1))

    expected = {
        "w1": (input_dim, hidden_dim),
        "b1": (hidden_dim,),
        "w2": (hidden_dim, output_dim),
        "b2": (output_dim,),
    }
    for name, param in parameters.get_parameters().items():
        if param.dtype != np.float64:
            raise ValueError(
                f"Parameter '{name}' has dtype {param.dtype}, expected float64"
            )
        if param.shape != expected[name]:
            raise ValueError(
                f"Parameter '{name}' has shape {param.shape}, "
                f"expected {expected[name]}"
            )


def report_progress(
    iteration: int,
    loss: float,
    log_every: int,
    progress_callback: Optional[ProgressCallback] = None,
    verbose: bool = False,
) -> None:
    """Report (iteration, loss) every log_every iterations, counting from 1."""
    if not log_every or iteration % log_every != 0:
        return
    if progress_callback is not None:
        progress_callback(iteration, loss)
    if verbose:
        print(f"Iteration {iteration:>5} | Loss: {loss:.4f}")


def fit(
    inputs: np.ndarray,
    targets: np.ndarray,
    config: Optional[FitConfig] = None,
    parameters: Optional[NetworkParameters] = None,
    progress_callback: Optional[ProgressCallback] = None,
    verbose: bool = False,
) -> FitResult:
    """
    Fit the network to (inputs, targets) with full-batch gradient descent.

    Args:
        inputs: Input matrix X, shape (N, D)
        targets: Target matrix Y, shape (N, O)
        config: Hyperparameters. Defaults to FitConfig().
        parameters: Optional float64 starting parameters. They are mutated
            in place and returned in the result. Biases may be (K,) or
            (1, K); a (1, K) bias is replaced by a (K,) view of itself.
            When omitted, parameters are drawn from
            np.random.default_rng(config.seed).
        progress_callback: Called as progress_callback(iteration, loss) every
            config.log_every iterations, iteration counting from 1
        verbose: Also print a progress line at the same cadence

    Returns:
        FitResult with the trained parameters and per-iteration losses

    Raises:
        ValueError: On invalid config, mismatched shapes or non-float64
            parameters
    """
    if config is None:
        config = FitConfig()
    config.validate()

    inputs, targets = prepare_data(inputs, targets)
    input_dim = inputs.shape[1]
    output_dim = targets.shape[1]

    if parameters is None:
        rng = np.random.default_rng(config.seed)
        parameters = initialize_parameters(
            input_dim, config.hidden_dim, output_dim, rng=rng
        )
    else:
        check_parameters(parameters, input_dim, config.hidden_dim, output_dim)

    optimizer = SGD(learning_rate=config.learning_rate)
    optimizer.initialize(parameters.get_parameters())

    loss_history: List[float] = []

    for iteration in range(config.num_iterations):
        loss, _ = train_step(parameters, optimizer, inputs, targets)
        loss_history.append(loss)

        # Log progress
        report_progress(
            iteration + 1, loss, config.log_every, progress_callback, verbose
        )

    return FitResult(parameters=parameters, loss_history=loss_history)
