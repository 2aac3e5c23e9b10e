"""Two-layer leaky network (784 → 64 → 10) trained with mini-batch SGD in pure NumPy."""
import logging
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

logger = logging.getLogger(__name__)

N_IN = 784
N_HIDDEN = 64
N_OUT = 10

POSITIVE_SLOPE = 0.25
NEGATIVE_SLOPE = 0.01


class MLPError(ValueError):
    pass


class ConfigurationError(MLPError):
    """Training or evaluation was asked to run on an unusable setup."""


class LabelError(MLPError):
    """A target vector is not one-hot."""


# ── Parameters ────────────────────────────────────────────────────────────────
# W1 (hidden x in), W2 (out x hidden), B1 (hidden,), B2 (out,)
@dataclass
class Parameters:
    w1: np.ndarray
    w2: np.ndarray
    b1: np.ndarray
    b2: np.ndarray

    @classmethod
    def initialize(cls, n_in=N_IN, n_hidden=N_HIDDEN, n_out=N_OUT, seed=None, dtype=np.float32):
        """Weights uniform in [-1, 1], biases zero."""
        rng = np.random.default_rng(seed)
        return cls(
            w1=(rng.random((n_hidden, n_in)) * 2 - 1).astype(dtype),
            w2=(rng.random((n_out, n_hidden)) * 2 - 1).astype(dtype),
            b1=np.zeros(n_hidden, dtype=dtype),
            b2=np.zeros(n_out, dtype=dtype),
        )

    @property
    def n_in(self):
        return self.w1.shape[1]

    @property
    def n_hidden(self):
        return self.w1.shape[0]

    @property
    def n_out(self):
        return self.w2.shape[0]

    def copy(self):
        return Parameters(self.w1.copy(), self.w2.copy(), self.b1.copy(), self.b2.copy())


# ── Activation ────────────────────────────────────────────────────────────────
# leaky linear unit: 0.25x above zero, 0.01x at or below zero
def leaky(x):
    return np.where(x > 0, POSITIVE_SLOPE * x, NEGATIVE_SLOPE * x)

def leaky_prime(x):
    return np.where(x > 0, POSITIVE_SLOPE, NEGATIVE_SLOPE).astype(np.result_type(x, np.float32))


# ── Forward propagation ───────────────────────────────────────────────────────
class LayerOutput(NamedTuple):
    pre_activation: np.ndarray
    activation: np.ndarray


# X (hidden,) = W (hidden x in) * A (in,) + B (hidden,);  A_next = leaky(X)
def forward(a_in, w, b):
    x = w.dot(a_in) + b
    return LayerOutput(x, leaky(x))

def feedforward(params, image):
    layer1 = forward(image, params.w1, params.b1)
    layer2 = forward(layer1.activation, params.w2, params.b2)
    return layer1, layer2


# ── Backpropagation ───────────────────────────────────────────────────────────
class Gradients(NamedTuple):
    grad_w1: np.ndarray
    grad_w2: np.ndarray
    grad_b1: np.ndarray
    grad_b2: np.ndarray

    @classmethod
    def zeros_like(cls, params):
        return cls(np.zeros_like(params.w1), np.zeros_like(params.w2),
                   np.zeros_like(params.b1), np.zeros_like(params.b2))


# cost C = 1/2 * |A2 - Y|^2, so dC/dA2 = A2 - Y
# dC/dX2 = dC/dA2 {element-wise-product} leaky'(X2)
# dC/dX1 = W2^T * dC/dX2 {element-wise-product} leaky'(X1)
# dC/dW = dC/dX * A_prev^T,  dC/dB = dC/dX
def backpropagation(params, image, label):
    layer1, layer2 = feedforward(params, image)

    delta2 = (layer2.activation - label) * leaky_prime(layer2.pre_activation)
    delta1 = params.w2.T.dot(delta2) * leaky_prime(layer1.pre_activation)

    return Gradients(
        grad_w1=np.outer(delta1, image),
        grad_w2=np.outer(delta2, layer1.activation),
        grad_b1=delta1,
        grad_b2=delta2,
    )

def cost(params, image, label):
    _, layer2 = feedforward(params, image)
    diff = layer2.activation - label
    return 0.5 * float(diff.dot(diff))

def total_cost(params, images, labels):
    return sum(cost(params, image, label) for image, label in zip(images, labels))


# ── Validation ────────────────────────────────────────────────────────────────
def check_one_hot(labels):
    """Every row must hold exactly one 1 and zeros elsewhere."""
    labels = np.asarray(labels)
    if labels.ndim != 2:
        raise LabelError(f"labels must be a 2-d one-hot matrix, got shape {labels.shape}")
    ones = labels == 1
    valid = (ones | (labels == 0)).all(axis=1) & (ones.sum(axis=1) == 1)
    if not valid.all():
        row = int(np.flatnonzero(~valid)[0])
        raise LabelError(f"label {row} is not one-hot: {labels[row].tolist()}")

def _check_samples(params, images, labels, what):
    if len(images) == 0:
        raise ConfigurationError(f"{what} set is empty")
    if len(images) != len(labels):
        raise ConfigurationError(f"{what} set has {len(images)} images but {len(labels)} labels")
    if np.shape(images)[1:] != (params.n_in,):
        raise ConfigurationError(f"{what} images must have length {params.n_in}, got shape {np.shape(images)[1:]}")
    if np.shape(labels)[1:] != (params.n_out,):
        raise ConfigurationError(f"{what} labels must have length {params.n_out}, got shape {np.shape(labels)[1:]}")
    check_one_hot(labels)


# ── Mini-batch gradient descent ───────────────────────────────────────────────
def _update_parameters(params, grads, learning_rate):
    params.w1 -= learning_rate * grads.grad_w1
    params.w2 -= learning_rate * grads.grad_w2
    params.b1 -= learning_rate * grads.grad_b1
    params.b2 -= learning_rate * grads.grad_b2

def gradient_descent(params, images, labels, epochs, minibatch_size, learning_rate):
    """Train `params` in place; returns the total training cost after each epoch.

    Minibatches are consecutive, unshuffled slices of the training set, so the
    set size must be a multiple of `minibatch_size`.
    """
    _check_samples(params, images, labels, "training")
    if epochs < 0:
        raise ConfigurationError(f"epoch count must be non-negative, got {epochs}")
    if minibatch_size <= 0:
        raise ConfigurationError(f"minibatch size must be positive, got {minibatch_size}")
    if len(images) % minibatch_size:
        raise ConfigurationError(
            f"minibatch size {minibatch_size} does not divide training set size {len(images)}")

    n_batches = len(images) // minibatch_size
    history = []
    for epoch in range(epochs):
        logger.debug("epoch %d: %d minibatches of %d", epoch + 1, n_batches, minibatch_size)
        for start in range(0, len(images), minibatch_size):
            acc = Gradients.zeros_like(params)
            for k in range(start, start + minibatch_size):
                grads = backpropagation(params, images[k], labels[k])
                for total, grad in zip(acc, grads):
                    total += grad / minibatch_size
            _update_parameters(params, acc, learning_rate)

        history.append(total_cost(params, images, labels))
        logger.info("epoch %4d  cost: %.4f", epoch + 1, history[-1])
    return history


# ── Evaluation ────────────────────────────────────────────────────────────────
# the prediction is the index of the largest output; np.argmax keeps the first on ties
def predict(params, image):
    _, layer2 = feedforward(params, image)
    return int(np.argmax(layer2.activation))

def evaluate(params, images, labels):
    """Percentage of samples whose predicted class matches the one-hot label."""
    _check_samples(params, images, labels, "test")
    correct = 0
    for image, label in zip(images, labels):
        if predict(params, image) == int(np.argmax(label)):
            correct += 1
    return 100.0 * correct / len(images)
