"""
MLX Autodiff Comparison for the Regression Network

This module runs the same two-layer network through Apple's MLX framework
and lets MLX compute the gradients automatically. It is a cross-check and a
contrast for the hand-derived backward pass in network.py:

- NumPy version: every gradient written out with the chain rule
- MLX version: one call to mx.value_and_grad, no backward code at all

Both versions start from identical parameters (drawn with NumPy), so their
gradients and loss trajectories can be compared directly. MLX computes in
float32, so agreement is to float32 tolerance.

Usage:
    from scratchnet.network_mlx import value_and_grad_mlx

    loss, grads = value_and_grad_mlx(parameters, inputs, targets)

Reference:
    - MLX Documentation: https://ml-explore.github.io/mlx/
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from scratchnet.network import NetworkParameters, initialize_parameters
from scratchnet.training import (
    FitConfig,
    FitResult,
    ProgressCallback,
    check_parameters,
    prepare_data,
    report_progress,
)

# Check if MLX is available
try:
    import mlx.core as mx

    MLX_AVAILABLE = True
except ImportError:
    MLX_AVAILABLE = False
    mx = None


def check_mlx_available():
    """Check if MLX is available and raise helpful error if not."""
    if not MLX_AVAILABLE:
        raise ImportError(
            "MLX is not installed. To compare against MLX autodiff:\n"
            "  pip install mlx\n\n"
            "Note: MLX only works on Apple Silicon Macs (M1/M2/M3/M4)."
        )


# =============================================================================
# MLX-SPECIFIC FUNCTIONS (only defined when MLX is available)
# =============================================================================

if MLX_AVAILABLE:

    def parameters_to_mlx(parameters: NetworkParameters) -> Dict[str, "mx.array"]:
        """Convert NumPy parameters to a dict of float32 MLX arrays."""
        return {
            name: mx.array(param.astype(np.float32))
            for name, param in parameters.get_parameters().items()
        }

    def parameters_from_mlx(params: Dict[str, "mx.array"]) -> NetworkParameters:
        """Convert a dict of MLX arrays back to float64 NetworkParameters."""
        return NetworkParameters(
            **{name: np.array(value, dtype=np.float64) for name, value in params.items()}
        )

    def loss_mlx(params: Dict[str, "mx.array"], inputs, targets):
        """
        Sum of squared error of the network, written with MLX ops.

        The forward pass mirrors network.forward exactly; MLX records it and
        can differentiate it.
        """
        hidden_pre = inputs @ params["w1"] + params["b1"]
        hidden_act = mx.maximum(hidden_pre, 0.0)
        predictions = hidden_act @ params["w2"] + params["b2"]
        return mx.sum(mx.square(predictions - targets))

    def value_and_grad_mlx(
        parameters: NetworkParameters, inputs: np.ndarray, targets: np.ndarray
    ) -> Tuple[float, Dict[str, np.ndarray]]:
        """
        Loss and parameter gradients via MLX automatic differentiation.

        Args:
            parameters: NumPy network parameters
            inputs: Input matrix, shape (N, D)
            targets: Target matrix, shape (N, O)

        Returns:
            Tuple of (loss, gradients keyed w1/b1/w2/b2 as float64 NumPy arrays)
        """
        params = parameters_to_mlx(parameters)
        inputs, targets = prepare_data(inputs, targets)
        x = mx.array(inputs.astype(np.float32))
        y = mx.array(targets.astype(np.float32))

        loss_and_grad = mx.value_and_grad(loss_mlx)
        loss, grads = loss_and_grad(params, x, y)
        mx.eval(loss, grads)

        gradients = {
            name: np.array(value, dtype=np.float64) for name, value in grads.items()
        }
        return loss.item(), gradients

    def fit_mlx(
        inputs: np.ndarray,
        targets: np.ndarray,
        config: Optional[FitConfig] = None,
        parameters: Optional[NetworkParameters] = None,
        progress_callback: Optional[ProgressCallback] = None,
        verbose: bool = False,
    ) -> FitResult:
        """
        Same training loop as training.fit, with MLX computing the gradients.

        Initialization uses the NumPy generator seeded with config.seed, so
        both versions start from the same weights. Given parameters are
        validated like in fit, but their values are left untouched: MLX
        trains float32 copies.

        Returns:
            FitResult with float64 NumPy parameters
        """
        check_mlx_available()

        if config is None:
            config = FitConfig()
        config.validate()

        inputs, targets = prepare_data(inputs, targets)

        if parameters is None:
            parameters = initialize_parameters(
                inputs.shape[1],
                config.hidden_dim,
                targets.shape[1],
                rng=np.random.default_rng(config.seed),
            )
        else:
            check_parameters(
                parameters, inputs.shape[1], config.hidden_dim, targets.shape[1]
            )

        params = parameters_to_mlx(parameters)
        x = mx.array(inputs.astype(np.float32))
        y = mx.array(targets.astype(np.float32))
        loss_and_grad = mx.value_and_grad(loss_mlx)

        loss_history: List[float] = []
        for iteration in range(config.num_iterations):
            loss, grads = loss_and_grad(params, x, y)
            params = {
                name: value - config.learning_rate * grads[name]
                for name, value in params.items()
            }
            mx.eval(loss, params)
            loss_history.append(loss.item())

            report_progress(
                iteration + 1,
                loss_history[-1],
                config.log_every,
                progress_callback,
                verbose,
            )

        return FitResult(
            parameters=parameters_from_mlx(params), loss_history=loss_history
        )

else:
    # Stubs for when MLX is not available

    def parameters_to_mlx(parameters: NetworkParameters):
        raise ImportError("MLX not available")

    def parameters_from_mlx(params):
        raise ImportError("MLX not available")

    def loss_mlx(params, inputs, targets):
        raise ImportError("MLX not available")

    def value_and_grad_mlx(parameters, inputs, targets):
        check_mlx_available()  # Will raise ImportError

    def fit_mlx(
        inputs,
        targets,
        config=None,
        parameters=None,
        progress_callback=None,
        verbose=False,
    ):
        check_mlx_available()  # Will raise ImportError
