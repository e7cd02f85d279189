"""
Two-Layer Regression Network

This module implements a feed-forward network with one ReLU hidden layer,
written at the level of explicit matrix operations: no layer objects, no
autograd. Every gradient is derived by hand with the chain rule.

Architecture Overview:
    Inputs X                     (N, D)
         |
    [X @ W1 + b1]                hidden_pre (N, H)
         |
    [ReLU]                       hidden_act (N, H)
         |
    [hidden_act @ W2 + b2]       predictions (N, O)
         |
    [sum of squared error vs Y]  loss (scalar)

Backward pass (reverse order):
    grad_predictions = 2 * (predictions - Y)              (N, O)
    grad_w2          = hidden_act^T @ grad_predictions    (H, O)
    grad_b2          = column_sum(grad_predictions)       (O,)
    grad_hidden_act  = grad_predictions @ W2^T            (N, H)
    grad_hidden_pre  = grad_hidden_act where hidden_pre > 0, else 0
    grad_w1          = X^T @ grad_hidden_pre              (D, H)
    grad_b1          = column_sum(grad_hidden_pre)        (H,)

Classes:
    NetworkParameters: The four trainable tensors
    ForwardCache: Intermediate activations of one forward pass
    Gradients: Gradients of one backward pass

Functions:
    initialize_parameters: Standard normal weights, zero biases
    forward: Compute activations and predictions
    predict: Forward pass returning only predictions
    sum_squared_error: Loss function
    sum_squared_error_backward: Gradient of the loss w.r.t. predictions
    backward: Backpropagate through the network
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from scratchnet.activations import relu, relu_backward
from scratchnet.tensor_ops import (
    as_matrix,
    broadcast_add_rows,
    column_sum,
    matmul,
)


@dataclass
class NetworkParameters:
    """
    The trainable state of the network.

    These four arrays are the only mutable state during training. They are
    owned by the training loop and only changed by the optimizer's update.

    Attributes:
        w1: First layer weights, shape (input_dim, hidden_dim)
        b1: First layer bias, shape (hidden_dim,)
        w2: Second layer weights, shape (hidden_dim, output_dim)
        b2: Second layer bias, shape (output_dim,)
    """

    w1: np.ndarray
    b1: np.ndarray
    w2: np.ndarray
    b2: np.ndarray

    @property
    def input_dim(self) -> int:
        return self.w1.shape[0]

    @property
    def hidden_dim(self) -> int:
        return self.w1.shape[1]

    @property
    def output_dim(self) -> int:
        return self.w2.shape[1]

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """
        Return dictionary of learnable parameters.

        The arrays are the same objects held by this record, so in-place
        updates made through the dictionary are visible here.
        """
        return {"w1": self.w1, "b1": self.b1, "w2": self.w2, "b2": self.b2}

    def shapes(self) -> Dict[str, Tuple[int, ...]]:
        """Return the shape of each parameter."""
        return {name: param.shape for name, param in self.get_parameters().items()}

    def count_parameters(self) -> int:
        """Total number of scalar parameters."""
        return sum(param.size for param in self.get_parameters().values())

    def copy(self) -> "NetworkParameters":
        """Deep copy of all four arrays."""
        return NetworkParameters(
            w1=self.w1.copy(), b1=self.b1.copy(), w2=self.w2.copy(), b2=self.b2.copy()
        )


@dataclass
class ForwardCache:
    """
    Everything the backward pass needs from one forward pass.

    Recomputed every iteration; nothing is carried over between iterations.
    """

    inputs: np.ndarray
    hidden_pre: np.ndarray
    hidden_act: np.ndarray
    predictions: np.ndarray


@dataclass
class Gradients:
    """
    Gradients of the loss for one iteration.

    Each gradient has the shape of the tensor it is the gradient of.
    """

    predictions: np.ndarray
    w2: np.ndarray
    b2: np.ndarray
    hidden_act: np.ndarray
    hidden_pre: np.ndarray
    w1: np.ndarray
    b1: np.ndarray

    def parameter_gradients(self) -> Dict[str, np.ndarray]:
        """Gradients keyed like NetworkParameters.get_parameters()."""
        return {"w1": self.w1, "b1": self.b1, "w2": self.w2, "b2": self.b2}


def initialize_parameters(
    input_dim: int,
    hidden_dim: int,
    output_dim: int = 1,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> NetworkParameters:
    """
    Create a freshly initialized network.

    Weights are drawn i.i.d. from a standard normal distribution (W1 first,
    then W2), biases start at zero. There is no fan-in scaling, so the
    learning rate has to suit the raw weight scale.

    Args:
        input_dim: Number of input features (D)
        hidden_dim: Number of hidden units (H)
        output_dim: Number of outputs (O)
        rng: Random generator to draw from. Takes precedence over seed.
        seed: Seed for a new generator when rng is not given

    Returns:
        NetworkParameters with float64 arrays

    Raises:
        ValueError: If any dimension is not positive
    """
    for name, value in (
        ("input_dim", input_dim),
        ("hidden_dim", hidden_dim),
        ("output_dim", output_dim),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")

    if rng is None:
        rng = np.random.default_rng(seed)

    w1 = rng.standard_normal((input_dim, hidden_dim))
    w2 = rng.standard_normal((hidden_dim, output_dim))

    return NetworkParameters(
        w1=w1,
        b1=np.zeros(hidden_dim),
        w2=w2,
        b2=np.zeros(output_dim),
    )


def forward(parameters: NetworkParameters, inputs: np.ndarray) -> ForwardCache:
    """
    Forward pass.

    Args:
        parameters: Current network parameters
        inputs: Input matrix of shape (N, D)

    Returns:
        ForwardCache holding hidden_pre, hidden_act and predictions

    Raises:
        ValueError: If the input feature count does not match W1
    """
    inputs = as_matrix(inputs, name="inputs")

    # Layer 1: affine, bias broadcast over the N rows
    hidden_pre = broadcast_add_rows(matmul(inputs, parameters.w1), parameters.b1)

    # Non-linearity
    hidden_act = relu(hidden_pre)

    # Layer 2: affine
    predictions = broadcast_add_rows(matmul(hidden_act, parameters.w2), parameters.b2)

    return ForwardCache(
        inputs=inputs,
        hidden_pre=hidden_pre,
        hidden_act=hidden_act,
        predictions=predictions,
    )


def predict(parameters: NetworkParameters, inputs: np.ndarray) -> np.ndarray:
    """Run the network and return only the predictions, shape (N, O)."""
    return forward(parameters, inputs).predictions


def _check_same_shape(predictions: np.ndarray, targets: np.ndarray) -> None:
    if predictions.shape != targets.shape:
        raise ValueError(
            f"Predictions shape {predictions.shape} does not match "
            f"targets shape {targets.shape}"
        )


def sum_squared_error(predictions: np.ndarray, targets: np.ndarray) -> float:
    """
    Sum of squared errors over every entry.

    Formula:
        L = sum_ij (predictions_ij - targets_ij)^2

    Note this is a sum, not a mean: the loss (and the gradient) grows with
    the number of samples.

    Raises:
        ValueError: If predictions and targets differ in shape
    """
    _check_same_shape(predictions, targets)
    return float(np.sum(np.square(predictions - targets)))


def sum_squared_error_backward(
    predictions: np.ndarray, targets: np.ndarray
) -> np.ndarray:
    """
    Gradient of sum_squared_error with respect to the predictions.

        dL/dpredictions = 2 * (predictions - targets)
    """
    _check_same_shape(predictions, targets)
    return 2.0 * (predictions - targets)


def backward(
    parameters: NetworkParameters,
    cache: ForwardCache,
    grad_predictions: np.ndarray,
) -> Gradients:
    """
    Backward pass through the network.

    Args:
        parameters: Parameters used for the forward pass that produced cache
        cache: Activations from that forward pass
        grad_predictions: Gradient of the loss w.r.t. predictions, (N, O)

    Returns:
        Gradients for all parameters and intermediate activations
    """
    # Layer 2: predictions = hidden_act @ W2 + b2
    grad_w2 = matmul(cache.hidden_act.T, grad_predictions)
    grad_b2 = column_sum(grad_predictions)
    grad_hidden_act = matmul(grad_predictions, parameters.w2.T)

    # ReLU: gradient only flows where the pre-activation was positive
    grad_hidden_pre = relu_backward(grad_hidden_act, cache.hidden_pre)

    # Layer 1: hidden_pre = X @ W1 + b1
    grad_w1 = matmul(cache.inputs.T, grad_hidden_pre)
    grad_b1 = column_sum(grad_hidden_pre)

    return Gradients(
        predictions=grad_predictions,
        w2=grad_w2,
        b2=grad_b2,
        hidden_act=grad_hidden_act,
        hidden_pre=grad_hidden_pre,
        w1=grad_w1,
        b1=grad_b1,
    )


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m scratchnet.network
# =============================================================================
if __name__ == "__main__":
    print("=" * 70)
    print("NETWORK DEMO - One Forward and Backward Pass by Hand")
    print("=" * 70)
    print()

    rng = np.random.default_rng(0)
    demo_inputs = rng.standard_normal((4, 3))
    demo_targets = rng.standard_normal((4, 1))
    demo_parameters = initialize_parameters(3, 5, 1, rng=rng)

    print("Parameter shapes:")
    for param_name, param_shape in demo_parameters.shapes().items():
        print(f"  {param_name}: {param_shape}")
    print(f"Total parameters: {demo_parameters.count_parameters()}")
    print()

    print("-" * 70)
    print("1. FORWARD PASS")
    print("-" * 70)
    demo_cache = forward(demo_parameters, demo_inputs)
    print(f"  hidden_pre:  {demo_cache.hidden_pre.shape}  (X @ W1 + b1)")
    print(f"  hidden_act:  {demo_cache.hidden_act.shape}  (ReLU)")
    print(f"  predictions: {demo_cache.predictions.shape}  (hidden_act @ W2 + b2)")
    demo_loss = sum_squared_error(demo_cache.predictions, demo_targets)
    print(f"  loss:        {demo_loss:.4f}")
    print()

    print("-" * 70)
    print("2. BACKWARD PASS")
    print("-" * 70)
    demo_gradients = backward(
        demo_parameters,
        demo_cache,
        sum_squared_error_backward(demo_cache.predictions, demo_targets),
    )
    for param_name, grad in demo_gradients.parameter_gradients().items():
        print(f"  grad_{param_name}: shape {grad.shape}, norm {np.linalg.norm(grad):.4f}")
    print()

    inactive = np.sum(demo_cache.hidden_pre <= 0)
    print(f"ReLU mask: {inactive} of {demo_cache.hidden_pre.size} hidden entries")
    print("were <= 0, so their gradient entries are exactly zero:")
    print(f"  {np.all(demo_gradients.hidden_pre[demo_cache.hidden_pre <= 0] == 0)}")
