""" Reactive dampening.

Optional helpers implementing a dampening factor which adjusts itself as
the iteration progresses. The convergence driver does not require them: the
update function can always be written by hand. When used, the current
dampening factor is read from a `DampenState` by the update function (see
`equilutils.updates.dynamic_damped_update`), while `dynamic_dampen` adjusts
it between iterations by looking at the convergence path.
"""
import logging
import math

import numpy as onp
from jax.flatten_util import ravel_pytree

from equilutils.config import DampenConfig
from equilutils.config import make_config
from equilutils.errors import InvalidInput
from equilutils.updates import check_dampen

logger = logging.getLogger(__name__)


def _as_vector(deviations):
    if isinstance(deviations, onp.ndarray):
        return onp.array(deviations, dtype=float).ravel()
    if isinstance(deviations, (list, tuple)) and not deviations:
        return onp.zeros((0,))
    flat, _ = ravel_pytree(deviations)
    return onp.asarray(flat, dtype=float)


class DampenState:
    """Mutable state of the dampening controller for one iteration run.

    Attributes:
        dampen (float): The current dampening factor, in `[0, 1)`.
        iters_since_loosened: Iterations since the factor was last lowered,
            `math.inf` before the first loosening.
        iters_since_tightened: Iterations since the factor was last raised,
            `math.inf` before the first tightening.
        reference_diff (float): Deviation recorded at the last adjustment.
            Loosening only resumes once the deviation has fallen sufficiently
            below it. `math.inf` before the first adjustment.
        last_deviations (numpy.ndarray): Per-component signed deviations of
            the last iteration.
        penultimate_deviations (numpy.ndarray): Per-component signed
            deviations of the iteration before.
        history (list): Deviation of every completed iteration, oldest first.
    """

    def __init__(self, dampen=0.85, iters_since_loosened=math.inf,
                 iters_since_tightened=math.inf, reference_diff=math.inf,
                 last_deviations=(), penultimate_deviations=(), history=None):
        self.dampen = dampen
        self.iters_since_loosened = iters_since_loosened
        self.iters_since_tightened = iters_since_tightened
        self.reference_diff = reference_diff
        self.last_deviations = _as_vector(last_deviations)
        self.penultimate_deviations = _as_vector(penultimate_deviations)
        self.history = [] if history is None else history

    @property
    def dampen(self):
        return self._dampen

    @dampen.setter
    def dampen(self, factor):
        check_dampen(factor)
        self._dampen = factor

    @property
    def iterations(self):
        return len(self.history)

    def push_deviations(self, deviations):
        """Record the per-component deviations of a new iteration.

        The previous `last_deviations` become the `penultimate_deviations`.
        `deviations` can be any pytree of arrays; it is flattened and copied.
        """
        deviations = _as_vector(deviations)
        if self.last_deviations.size and (
                deviations.shape != self.last_deviations.shape):
            raise InvalidInput(
                "Expected {} deviations, got {}.".format(
                    self.last_deviations.size, deviations.size))
        self.penultimate_deviations = self.last_deviations
        self.last_deviations = deviations

    def replace(self, **fields):
        """Return a new state with some fields replaced.

        The history list is shared with the new state, everything else is a
        copy.
        """
        values = dict(
            dampen=self.dampen,
            iters_since_loosened=self.iters_since_loosened,
            iters_since_tightened=self.iters_since_tightened,
            reference_diff=self.reference_diff,
            last_deviations=self.last_deviations,
            penultimate_deviations=self.penultimate_deviations,
            history=self.history,
        )
        values.update(fields)
        return DampenState(**values)

    def copy(self):
        return self.replace(history=list(self.history))

    def __repr__(self):
        return ("DampenState(dampen={}, iters_since_loosened={}, "
                "iters_since_tightened={}, reference_diff={}, "
                "iterations={})").format(
                    self.dampen, self.iters_since_loosened,
                    self.iters_since_tightened, self.reference_diff,
                    self.iterations)


def isdiverging(history):
    """Check if the iteration is on a bad path.

    The iteration is considered to diverge if two of the last three
    iterations worsened the deviation. When updating is too aggressive one of
    two things usually happens: the deviation blows up, or it alternates
    between improving and worsening. Both are caught by this test.

    Args:
        history: Sequence of deviations, oldest first.

    Returns:
        bool: `False` if fewer than three deviations are available.
    """
    if len(history) < 3:
        return False
    recent = onp.asarray(history[-4:], dtype=float)
    return int(onp.sum(onp.diff(recent) > 0)) >= 2


def isovershooting(last_deviations, penultimate_deviations, share=0.5):
    """Check if the iteration overshoots the fixed point on every step.

    If dampening isn't strong enough the deviations alternate between
    positive and negative, wasting iterations bouncing back and forth. This
    is measured by the share of deviations which flipped sign between the
    last two iterations.

    Args:
        last_deviations: Deviations of the last iteration.
        penultimate_deviations: Deviations of the iteration before.
        share (float, optional): The iteration overshoots if strictly more
            than this share of the deviations flipped sign.

    Returns:
        bool: `False` if either iteration has no recorded deviations.

    Raises:
        InvalidInput: If the two sets of deviations have different lengths.
    """
    last = _as_vector(last_deviations)
    penultimate = _as_vector(penultimate_deviations)
    if not last.size or not penultimate.size:
        return False
    if last.shape != penultimate.shape:
        raise InvalidInput("Mismatched lengths: {} and {}.".format(
            last.size, penultimate.size))

    flipped = last * penultimate < 0
    return bool(onp.mean(flipped) > share)


def isconvex(history, tail=5, tol=0.):
    """Check if the last `tail` deviations decrease at a decelerating rate.

    This distinguishes healthy convergence, where the deviation keeps falling
    but by less each time, from erratic paths. Every first difference must be
    at most `tol` and every second difference at least `-tol`.

    Args:
        history: Sequence of deviations, oldest first.
        tail (int, optional): Number of trailing deviations to inspect, at
            least three.
        tol (float, optional): Slack allowed on both tests.

    Returns:
        bool: `False` if fewer than `tail` deviations are available.
    """
    if tail < 3:
        raise InvalidInput("`tail` must be at least 3, got {}.".format(tail))
    if len(history) < tail:
        return False

    recent = onp.asarray(history[-tail:], dtype=float)
    decreasing = onp.all(onp.diff(recent) <= tol)
    decelerating = onp.all(onp.diff(recent, n=2) >= -tol)
    return bool(decreasing and decelerating)


def dampen_step(state, config=None):
    """Decide the next dampening factor from the convergence path.

    The strategy is, in order:

    * Tighten by `config.tighten_step` if the history `isdiverging` or the
      deviations are `isovershooting`, unless within `config.tighten_wait`
      iterations of the last tightening. This also applies during the grace
      period.
    * Make no change if any of:
        - fewer than `config.grace_period` iterations have completed;
        - under `config.tighten_wait` iterations since the last tightening;
        - under `config.loosen_wait` iterations since the last loosening;
        - the current deviation is above `config.scale` times the reference
          deviation.
    * Otherwise loosen by `config.loosen_step`.

    The factor is always clamped to `[config.min_dampen, config.max_dampen]`.
    `state` is left untouched.

    Args:
        state (DampenState): The current state.
        config (DampenConfig, optional): Controller parameters.

    Returns:
        DampenState: The new state. It shares its history with `state`.
    """
    config = make_config(DampenConfig, config)
    history = state.history
    current_diff = float(history[-1]) if len(history) else math.inf

    started = len(history) >= config.grace_period
    tightened_recently = state.iters_since_tightened < config.tighten_wait
    loosened_recently = state.iters_since_loosened < config.loosen_wait

    def clamp(factor):
        return min(max(factor, config.min_dampen), config.max_dampen)

    if not tightened_recently and (
            isdiverging(history) or isovershooting(
                state.last_deviations, state.penultimate_deviations,
                share=config.overshoot_share)):
        dampen = clamp(state.dampen + config.tighten_step)
        logger.debug("Tightening dampening factor from %s to %s.",
                     state.dampen, dampen)
        return state.replace(
            dampen=dampen,
            iters_since_tightened=0,
            iters_since_loosened=state.iters_since_loosened + 1,
            reference_diff=current_diff,
        )

    if (not started or tightened_recently or loosened_recently
            or current_diff > config.scale * state.reference_diff):
        return state.replace(
            dampen=clamp(state.dampen),
            iters_since_tightened=state.iters_since_tightened + 1,
            iters_since_loosened=state.iters_since_loosened + 1,
        )

    dampen = clamp(state.dampen + config.loosen_step)
    logger.debug("Loosening dampening factor from %s to %s.",
                 state.dampen, dampen)
    return state.replace(
        dampen=dampen,
        iters_since_loosened=0,
        iters_since_tightened=state.iters_since_tightened + 1,
        reference_diff=current_diff,
    )


def dynamic_dampen(state, config=None):
    """Update the dampening factor of `state` in place.

    See `dampen_step` for the strategy.

    Returns:
        DampenState: `state`, after the update.
    """
    new_state = dampen_step(state, config)
    state.dampen = new_state.dampen
    state.iters_since_loosened = new_state.iters_since_loosened
    state.iters_since_tightened = new_state.iters_since_tightened
    state.reference_diff = new_state.reference_diff
    return state
