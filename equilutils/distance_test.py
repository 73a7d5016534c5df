import pytest

import numpy as np
from numpy import testing

from equilutils import distance
from equilutils import errors

import jax
import jax.numpy as jnp
jax.config.update("jax_enable_x64", True)


@pytest.mark.parametrize("metric", [distance.sum_abs_diff,
                                    distance.max_abs_diff,
                                    distance.infnorm_pctdev])
def test_identical_inputs(metric):
    x = jnp.array([1., -2., 3.5])
    assert metric(x, x) == 0.


def test_sum_abs_diff():
    v1 = jnp.array([1., 2., 3.])
    v2 = jnp.array([1., 0., 5.])
    testing.assert_allclose(distance.sum_abs_diff(v1, v2), 4.)


def test_max_abs_diff():
    v1 = jnp.array([1., 2., 3.])
    v2 = jnp.array([1., 0., 5.5])
    testing.assert_allclose(distance.max_abs_diff(v1, v2), 2.5)


def test_infnorm_pctdev():
    v1 = jnp.array([1.1, 2., 0.5])
    v2 = jnp.array([1., 2., 0.])
    # the zero element of `v2` is compared in absolute terms
    testing.assert_allclose(distance.infnorm_pctdev(v1, v2), 0.5)
    testing.assert_allclose(distance.infnorm_pctdev(v1[:2], v2[:2]), 0.1)


def test_pytree_input():
    v1 = (np.ones((2, 3)), [1., 2., {"foo": 4.}])
    v2 = (np.zeros((2, 3)), [1., 1., {"foo": 1.}])
    v1, v2 = jax.tree_util.tree_map(jnp.asarray, (v1, v2))

    testing.assert_allclose(distance.sum_abs_diff(v1, v2), 10.)
    testing.assert_allclose(distance.max_abs_diff(v1, v2), 3.)


@pytest.mark.parametrize("v1, v2", [
    (jnp.zeros(2), jnp.zeros(3)),
    (jnp.zeros((2, 2)), jnp.zeros(4)),
    ((jnp.zeros(2),), (jnp.zeros(2), jnp.zeros(2))),
])
@pytest.mark.parametrize("metric", [distance.sum_abs_diff,
                                    distance.max_abs_diff,
                                    distance.infnorm_pctdev])
def test_mismatched_lengths(metric, v1, v2):
    with pytest.raises(errors.InvalidInput):
        metric(v1, v2)


def test_invalid_input_is_a_value_error():
    with pytest.raises(ValueError):
        distance.sum_abs_diff(jnp.zeros(2), jnp.zeros(3))
