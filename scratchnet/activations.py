"""
Activation Functions

The hidden layer of the regression network uses the Rectified Linear Unit.
Both the forward function and its gradient are written out by hand so the
backward pass in network.py can be followed line by line.

Functions:
    relu: Rectified Linear Unit

Gradient Functions:
    relu_backward: Gradient of ReLU (the rectifier mask)
"""

import numpy as np

from scratchnet.tensor_ops import where_positive


def relu(x: np.ndarray) -> np.ndarray:
    """
    Compute ReLU (Rectified Linear Unit) activation.

    It passes positive values unchanged and sets the rest to zero.

    Mathematical Formula:
        ReLU(x) = max(x, 0)

    Properties:
        - Non-linear (lets two stacked linear layers fit non-linear data)
        - Non-differentiable at x=0 (we use 0 as the subgradient)
        - Can cause "dead" hidden units whose pre-activation is always <= 0

    Args:
        x: Input array of any shape.

    Returns:
        Output array of same shape with ReLU applied element-wise.

    Example:
        >>> x = np.array([[-2.0, -1.0, 0.0, 1.0, 2.0]])
        >>> relu(x)
        array([[0., 0., 0., 1., 2.]])
    """
    return np.maximum(x, 0.0)


def relu_backward(upstream_gradient: np.ndarray, x: np.ndarray) -> np.ndarray:
    """
    Compute the gradient of ReLU with respect to its input.

    The derivative of ReLU is:
        d(ReLU)/dx = 1 if x > 0, else 0

    so the upstream gradient passes through where the pre-activation was
    positive and is zeroed everywhere else, including x == 0.

    Args:
        upstream_gradient: Gradient flowing back from the next layer.
        x: The original input to the forward pass (the pre-activation).

    Returns:
        input_gradient: Gradient with respect to the input x.
    """
    return where_positive(x, upstream_gradient)
