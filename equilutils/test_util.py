import hypothesis.extra.numpy
import hypothesis.strategies
import jax.numpy as np
import numpy as onp
import scipy.linalg
from absl.testing import parameterized
from numpy import testing

from equilutils import distance
from equilutils import updates
from equilutils import utils


def generate_stable_matrix(size, eps=1e-2, rng=onp.random):
    """Draw a square matrix `A` for which `x = Ax + b` is a contraction.

    Every singular value is clipped to at most `1 - eps`, so plain
    fixed-point iteration converges at a rate of at least `1 - eps`.

    Args:
        size (int): Number of rows and columns.
        eps (float): Contraction margin, between 0 and 1.
        rng (optional): Source of the uniform entries, e.g. a seeded
            `numpy.random.RandomState`.
    """
    mat = rng.rand(size, size)
    return make_stable(mat, eps)


def make_stable(matrix, eps):
    # clip the spectrum, keep the singular vectors
    u, s, vt = onp.linalg.svd(matrix)
    s = onp.clip(s, 0, 1 - eps)
    return u.dot(s[:, None] * vt)


def ax_plus_b(xvec, amat, bvec):
    return np.tensordot(amat, xvec, 1) + bvec


def solve_ax_b(amat, bvec):
    """Solve for the fixed point x = Ax + b."""
    matrix = onp.eye(amat.shape[0]) - amat
    return onp.linalg.solve(matrix, bvec)


class ContractionIteration:
    """Damped iteration of `x = Ax + b`, written the way a caller of
    `converge` would write it.

    `step` evaluates the mapping at the current iterate and keeps the result
    as the candidate; `update` moves the iterate towards the candidate. If a
    `DampenState` is given, its dampening factor is used.
    """

    def __init__(self, matrix, offset, dampen=0.5, state=None):
        self.matrix = matrix
        self.offset = offset
        self.dampen = dampen
        self.state = state
        self.main = np.zeros_like(offset)
        self.secondary = np.zeros_like(offset)
        self.num_steps = 0
        self.num_updates = 0

    def step(self):
        self.num_steps += 1
        self.secondary = ax_plus_b(self.main, self.matrix, self.offset)
        deviations = self.secondary - self.main
        return distance.sum_abs_diff(self.secondary, self.main), deviations

    def update(self):
        self.num_updates += 1
        if self.state is None:
            result = updates.damped_update(self.main, self.secondary,
                                           dampen=self.dampen)
        else:
            result = updates.dynamic_damped_update(self.main, self.secondary,
                                                   self.state)
        self.main, self.secondary = result.main, result.secondary
        return result.step_size


class ExchangeEconomy:
    """A pure exchange economy with Cobb-Douglas consumers.

    Consumer `i` owns the endowment `endowments[i]` and spends the share
    `shares[i, j]` of its income on good `j`. Prices are found by
    tatonnement: each price moves in the direction of the relative excess
    demand for its good, with the first good as numeraire.
    """

    def __init__(self, shares, endowments, dampen=0.5):
        self.shares = onp.asarray(shares, dtype=float)
        self.endowments = onp.asarray(endowments, dtype=float)
        self.supply = self.endowments.sum(axis=0)
        self.dampen = dampen
        self.prices = np.ones(self.supply.shape)
        self.previous_prices = self.prices

    def excess_demand(self, prices):
        incomes = np.dot(self.endowments, prices)
        demand = self.shares * incomes[:, None] / prices[None, :]
        return demand.sum(axis=0) - self.supply

    def step(self):
        relative = self.excess_demand(self.prices) / self.supply
        return np.sum(np.abs(relative)), relative

    def update(self):
        relative = self.excess_demand(self.prices) / self.supply
        new_prices = utils.normalise(
            updates.update(self.prices, relative, dampen=self.dampen))
        self.prices, self.previous_prices = new_prices, self.prices
        return distance.sum_abs_diff(new_prices, self.previous_prices)

    def equilibrium_prices(self):
        # p_j * supply_j = sum_i shares_ij * (endowments_i . p)
        system = onp.diag(self.supply) - self.shares.T.dot(self.endowments)
        prices = scipy.linalg.null_space(system)[:, 0]
        return prices / prices[0]


class ConvergeTestCase(parameterized.TestCase):

    def make_solver(self):
        """Return a callable `(matrix, offset) -> (result, value)`."""
        raise NotImplementedError

    @hypothesis.settings(max_examples=10, deadline=None)
    @hypothesis.given(
        hypothesis.extra.numpy.arrays(
            onp.float64, (5, 5), elements=hypothesis.strategies.floats(0, 1)),
        hypothesis.extra.numpy.arrays(
            onp.float64, 5, elements=hypothesis.strategies.floats(0, 1)),
    )
    def testSimpleContraction(self, matrix, offset):
        matrix = make_stable(matrix, eps=1e-1)
        solver = self.make_solver()
        self.assertSimpleContraction(solver, matrix, offset)

    def assertSimpleContraction(self, solver, matrix, offset):
        true_sol = solve_ax_b(matrix, offset)
        result, value = solver(np.asarray(matrix), np.asarray(offset))

        self.assertTrue(result.converged)
        self.assertFalse(result.stalled)
        testing.assert_allclose(value, true_sol, rtol=1e-5, atol=1e-5)

    def testGeneratedContraction(self):
        rng = onp.random.RandomState(0)
        matrix = generate_stable_matrix(10, 1e-1, rng=rng)
        offset = rng.rand(10)

        solver = self.make_solver()
        self.assertSimpleContraction(solver, matrix, offset)
