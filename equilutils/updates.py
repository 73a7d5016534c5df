""" Damped updates of an iterate towards a candidate.

The functions in this module are optional helpers for writing the update
function handed to `equilutils.converge`.
"""
import collections

from jax import tree_util
import jax.numpy as np

from equilutils.distance import check_same_shape
from equilutils.distance import sum_abs_diff
from equilutils.errors import InvalidInput

DampedUpdate = collections.namedtuple(
    "DampedUpdate",
    "main secondary step_size"
)


def check_dampen(dampen):
    if not 0 <= dampen < 1:
        raise InvalidInput(
            "The dampening factor must be in [0, 1), got {}.".format(dampen))


def update(x, dev, dampen=0., rev=False):
    """Move `x` according to the deviation `dev`.

    A positive `dev` increases `x` and a negative `dev` decreases it. The
    update is concave in `dev`: the larger the deviation, the slower `x`
    moves, so that a single large deviation cannot throw the iterate far
    away. `x` is scaled by `1 + (1 - dampen) * tanh(dev)`, which lies
    strictly between `dampen` and `2 - dampen`.

    This is the elementwise step applied to a price or quantity. To blend an
    iterate towards a candidate and get the size of the step back, which is
    what an update function handed to `converge` must return, use
    `damped_update` (or `dynamic_damped_update` with a `DampenState`).
    `update` can produce the candidate for them.

    Args:
        x: The value to update. Can be a scalar, an array or a pytree.
        dev: The deviation, with the same structure as `x` or a scalar.
        dampen (float, optional): Additional dampening in `[0, 1)`. Defaults
            to no dampening.
        rev (bool, optional): If `True`, a positive `dev` decreases `x` and a
            negative `dev` increases it.

    Returns:
        The updated value, with the same structure as `x`.
    """
    check_dampen(dampen)
    sign = -1. if rev else 1.

    def _update(x, dev):
        return x * (1 + (1 - dampen) * np.tanh(sign * np.asarray(dev)))

    if tree_util.treedef_is_leaf(tree_util.tree_structure(dev)):
        return tree_util.tree_map(lambda leaf: _update(leaf, dev), x)
    return tree_util.tree_map(_update, x, dev)


def damped_update(main, secondary, dampen=0.5, distance=sum_abs_diff):
    """Move `main` towards `secondary` with a dampening factor.

    The new value is `main + (1 - dampen) * (secondary - main)`, i.e. a
    convex combination giving a weight of `dampen` to the current value.
    Nothing is modified in place; instead the returned `secondary` is the
    very object passed in as `main`, which keeps a record of the previous
    iteration.

    Args:
        main: The current iterate. Any pytree of arrays.
        secondary: The candidate iterate, with the same structure as `main`.
        dampen (float, optional): Weight given to `main`, in `[0, 1)`.
            Defaults to `0.5`.
        distance (callable, optional): A metric of type `(a, a) -> float`
            used to report the size of the update. Defaults to
            `sum_abs_diff`.

    Returns:
        DampedUpdate: A named tuple with attributes `main` (the new iterate),
            `secondary` (the previous iterate, i.e. the `main` argument) and
            `step_size` (the distance between the two).

    Raises:
        InvalidInput: If `dampen` is outside of `[0, 1)` or the iterates do
            not have the same shape.
    """
    check_dampen(dampen)
    check_same_shape(main, secondary)

    new_main = tree_util.tree_map(
        lambda x, y: x + (1 - dampen) * (np.asarray(y) - x), main, secondary)
    return DampedUpdate(
        main=new_main,
        secondary=main,
        step_size=distance(new_main, main),
    )


def dynamic_damped_update(main, secondary, state, dampen=None,
                          distance=sum_abs_diff):
    """Like `damped_update`, using the dampening factor held in `state`.

    Args:
        state (DampenState): The state of the dampening controller.
        dampen (float, optional): If given, takes precedence over the factor
            held in `state`.
    """
    if dampen is None:
        dampen = state.dampen
    return damped_update(main, secondary, dampen=dampen, distance=distance)
