""" Deviation metrics between two iterates.

All metrics accept arbitrary pytrees of arrays and reduce over every leaf.
"""
from jax import tree_util
import jax.numpy as np

from equilutils.errors import InvalidInput


def check_same_shape(x, y):
    """Raise `InvalidInput` unless `x` and `y` are pytrees with the same
    structure and leaves of the same shape."""
    x_leaves, x_def = tree_util.tree_flatten(x)
    y_leaves, y_def = tree_util.tree_flatten(y)
    if x_def != y_def:
        raise InvalidInput(
            "Mismatched structures: {} and {}.".format(x_def, y_def))

    for x_leaf, y_leaf in zip(x_leaves, y_leaves):
        if np.shape(x_leaf) != np.shape(y_leaf):
            raise InvalidInput("Mismatched lengths: {} and {}.".format(
                np.shape(x_leaf), np.shape(y_leaf)))


def _tree_reduce_sum(x):
    return sum(tree_util.tree_leaves(x), np.zeros(()))


def _tree_reduce_max(x):
    return np.max(np.stack([np.max(leaf) for leaf in tree_util.tree_leaves(x)]
                           + [np.zeros(())]))


def sum_abs_diff(v1, v2):
    """Sum of the elementwise absolute differences between `v1` and `v2`.

    This is the default metric of the damped update.

    Raises:
        InvalidInput: If `v1` and `v2` do not have the same shape.
    """
    check_same_shape(v1, v2)
    partial = tree_util.tree_map(
        lambda x, y: np.sum(np.abs(np.asarray(x) - np.asarray(y))), v1, v2)
    return _tree_reduce_sum(partial)


def max_abs_diff(v1, v2):
    """Largest elementwise absolute difference between `v1` and `v2`."""
    check_same_shape(v1, v2)
    partial = tree_util.tree_map(
        lambda x, y: np.abs(np.asarray(x) - np.asarray(y)), v1, v2)
    return _tree_reduce_max(partial)


def infnorm_pctdev(v1, v2):
    """Largest absolute percentage deviation of `v1` from `v2`.

    Elements of `v2` equal to zero are replaced by one before dividing, so
    the deviation is absolute for those elements.
    """
    check_same_shape(v1, v2)

    def pct_dev(x, y):
        x = np.asarray(x)
        y = np.asarray(y)
        return np.abs((x - y) / np.where(y == 0, np.ones_like(y), y))

    return _tree_reduce_max(tree_util.tree_map(pct_dev, v1, v2))
