import collections
import logging
import warnings

from equilutils.config import ConvergeConfig
from equilutils.config import DampenConfig
from equilutils.config import make_config
from equilutils.dampen import dynamic_dampen
from equilutils.errors import InvalidInput
from equilutils.errors import NonConvergenceWarning

logger = logging.getLogger(__name__)

ConvergeResult = collections.namedtuple(
    "ConvergeResult",
    "converged stalled"
)


def _split_step_output(output):
    if isinstance(output, tuple):
        diff, deviations = output
        return diff, deviations
    return output, None


def converge(update_fn, step_fn, config=None, init_fn=None, state=None,
             dampen_config=None, history=None):
    """Iterate until convergence.

    On every iteration, `step_fn()` is called to do an iteration step and
    report the deviation. Unless the deviation is below `config.diff_tol`,
    `update_fn()` is then called to apply an update and report its size. If
    the update is smaller than `config.update_tol` the iteration stops as
    stalled.

    When a `DampenState` is given, every deviation is appended to its
    history. When a `DampenConfig` is given as well, the dampening factor of
    the state is adjusted with `dynamic_dampen` after each step and before
    the update, so the update of an iteration uses a factor reflecting the
    deviation of that same iteration.

    NOTE: reaching `config.max_iter` is not an error. A
    `NonConvergenceWarning` carrying `config.message` is emitted and the
    result is marked as neither converged nor stalled.

    Args:
        update_fn (callable): A function of no arguments applying an update
            and returning its size.
        step_fn (callable): A function of no arguments doing an iteration
            step and returning the deviation. It may also return a tuple
            `(diff, deviations)` of the deviation and the per-component
            signed deviations, which are recorded in `state`.
        config (ConvergeConfig or dict, optional): Stopping criteria.
        init_fn (callable, optional): Called once before the first step.
        state (DampenState, optional): State of the dampening controller,
            read by `update_fn` to choose its dampening factor.
        dampen_config (DampenConfig or dict, optional): If given, adjust the
            dampening factor of `state` on every iteration.
        history (list, optional): If given, every deviation is appended to
            it.

    Returns:
        ConvergeResult: A named tuple `(converged, stalled)` of booleans.
            `converged` indicates whether the deviation fell below
            `config.diff_tol`; `stalled` whether iteration was aborted because
            the update fell below `config.update_tol`.
    """
    config = make_config(ConvergeConfig, config)

    if dampen_config is not None:
        if state is None:
            raise InvalidInput(
                "A `DampenState` is required for dynamic dampening.")
        dampen_config = make_config(DampenConfig, dampen_config)

    sinks = []
    if history is not None:
        sinks.append(history)
    if state is not None and state.history is not history:
        sinks.append(state.history)

    if init_fn is not None:
        init_fn()

    for iteration in range(1, config.max_iter + 1):
        diff, deviations = _split_step_output(step_fn())
        for sink in sinks:
            sink.append(diff)
        if deviations is not None and state is not None:
            state.push_deviations(deviations)

        if config.verbose:
            if state is None:
                logger.info("Iteration %d: diff = %s", iteration, diff)
            else:
                logger.info("Iteration %d: diff = %s, dampen = %s",
                            iteration, diff, state.dampen)

        if diff < config.diff_tol:
            return ConvergeResult(converged=True, stalled=False)

        if dampen_config is not None:
            dynamic_dampen(state, dampen_config)

        step_size = update_fn()
        if step_size < config.update_tol:
            logger.debug("Update of size %s stalled on iteration %d.",
                         step_size, iteration)
            return ConvergeResult(converged=False, stalled=True)

    warnings.warn(config.message, NonConvergenceWarning)
    return ConvergeResult(converged=False, stalled=False)
