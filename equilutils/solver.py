""" A bounded Newton-Raphson root finder for scalar functions.
"""
import collections
import logging
import warnings

import jax

from equilutils.config import NewtonConfig
from equilutils.config import make_config
from equilutils.errors import InvalidInput
from equilutils.errors import NonConvergenceWarning

logger = logging.getLogger(__name__)

NewtonSolution = collections.namedtuple(
    "NewtonSolution",
    "value converged iterations"
)


def _pull_back(x, new_x, lower, upper):
    if new_x < lower:
        return (x + lower) / 2
    if new_x > upper:
        return (x + upper) / 2
    return new_x


def newton(func, x, fprime=None, config=None):
    """Find a root of `func` with Newton's method, staying within bounds.

    Iterates that would leave `[config.lower, config.upper]` are instead
    moved halfway from the current iterate towards the violated bound.

    Args:
        func (callable): A scalar function of a scalar.
        x (float): The initial guess, within the bounds.
        fprime (callable, optional): The derivative of `func`. If not given,
            `func` must be differentiable with `jax.grad`.
        config (NewtonConfig or dict, optional): Stopping criteria and
            bounds.

    Returns:
        NewtonSolution: A named tuple containing the last iterate `value`, a
            bool `converged` and the number of `iterations` used.

    Raises:
        InvalidInput: If `x` is outside of the bounds.
    """
    config = make_config(NewtonConfig, config)
    if fprime is None:
        fprime = jax.grad(func)

    x = float(x)
    if not config.lower <= x <= config.upper:
        raise InvalidInput(
            "Initial guess {} is outside of [{}, {}].".format(
                x, config.lower, config.upper))

    for iteration in range(1, config.max_iter + 1):
        value = float(func(x))
        if abs(value) < config.function_tol:
            return NewtonSolution(value=x, converged=True,
                                  iterations=iteration)

        slope = float(fprime(x))
        if slope == 0:
            warnings.warn(
                "{}: zero derivative at {}.".format(config.message, x),
                NonConvergenceWarning)
            return NewtonSolution(value=x, converged=False,
                                  iterations=iteration)

        new_x = _pull_back(x, x - value / slope, config.lower, config.upper)
        step = new_x - x
        x = new_x

        if config.verbose:
            logger.info("Iteration %d: x = %s, f(x) = %s, step = %s",
                        iteration, x, value, step)

        if abs(step) < config.step_tol:
            return NewtonSolution(value=x, converged=True,
                                  iterations=iteration)

    warnings.warn(config.message, NonConvergenceWarning)
    return NewtonSolution(value=x, converged=False, iterations=config.max_iter)
