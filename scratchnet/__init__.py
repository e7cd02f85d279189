"""
Backpropagation from Scratch

This package fits a small feed-forward regression network (one ReLU hidden
layer) with full-batch gradient descent, using only NumPy. The forward and
backward passes are written as explicit matrix operations so every step of
backpropagation can be read and checked. It is designed for educational
purposes: the routine is the hand-written counterpart of what autograd
frameworks do automatically.

Modules:
    tensor_ops: Dense 2-D matrix primitives with shape checks
    activations: ReLU and its gradient
    network: Parameters, forward pass, loss and backward pass
    optimizer: Plain gradient descent (SGD)
    training: The fit loop and its configuration
    utils: Synthetic data, checkpointing and gradient diagnostics
    network_mlx: Same network with MLX autodiff, for comparison (optional)
"""

__version__ = "1.0.0"
__author__ = "Educational Backprop Project"
