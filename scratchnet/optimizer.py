"""
Plain Gradient Descent

This module implements the simplest possible optimizer: subtract the
gradient, scaled by a fixed learning rate, from every parameter.

    theta_t = theta_{t-1} - lr * g_t

There is no momentum, no weight decay, no clipping and no learning-rate
schedule. With a learning rate that is too large for the data scale the
updates overshoot and the loss diverges; nothing here tries to stop that.

Classes:
    SGD: Gradient descent optimizer with in-place updates
"""

from typing import Dict, Optional

import numpy as np


class SGD:
    """
    Gradient Descent Optimizer.

    Follows the same life cycle as other optimizers: initialize() with the
    parameter dictionary once, then step() with a gradient dictionary per
    iteration. Parameters are updated in place.

    Attributes:
        learning_rate: Step size for updates
        step_count: Number of optimization steps taken
    """

    def __init__(self, learning_rate: float = 1e-4):
        """
        Initialize SGD optimizer.

        Args:
            learning_rate: Step size. Must be positive.
        """
        if learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {learning_rate}")

        self.learning_rate = learning_rate
        self.step_count: int = 0

        # Reference to parameters (for in-place updates)
        self._params: Optional[Dict[str, np.ndarray]] = None

    def initialize(self, parameters: Dict[str, np.ndarray]) -> None:
        """
        Attach the optimizer to a parameter dictionary.

        Args:
            parameters: Dictionary of parameter name -> parameter array
        """
        self._params = parameters
        self.step_count = 0

    def step(
        self, gradients: Dict[str, np.ndarray], learning_rate: Optional[float] = None
    ) -> None:
        """
        Perform a single optimization step.

        Every gradient is read before any parameter is written, so all
        updates in one step use the same iteration's gradients.

        Args:
            gradients: Dictionary of parameter name -> gradient array
            learning_rate: Optional override for this step only
        """
        if self._params is None:
            raise RuntimeError("Optimizer not initialized. Call initialize() first.")

        lr = learning_rate if learning_rate is not None else self.learning_rate

        updates = {}
        for name, gradient in gradients.items():
            if name not in self._params:
                continue
            param = self._params[name]
            if gradient.shape != param.shape:
                raise ValueError(
                    f"Gradient for '{name}' has shape {gradient.shape}, "
                    f"parameter has shape {param.shape}"
                )
            updates[name] = lr * gradient

        for name, update in updates.items():
            self._params[name] -= update

        self.step_count += 1

    def get_state(self) -> dict:
        """Get optimizer state for checkpointing."""
        return {"learning_rate": self.learning_rate, "step_count": self.step_count}

    def load_state(self, state: dict) -> None:
        """Load optimizer state from checkpoint."""
        self.learning_rate = state["learning_rate"]
        self.step_count = state["step_count"]
