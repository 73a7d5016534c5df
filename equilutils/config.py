""" Configuration records for the iteration routines.

Every routine takes one immutable configuration record with documented
defaults. Records can be built from scratch, from an existing record or from
a mapping with `make_config`.
"""
import collections
import math
import numbers

from equilutils.errors import InvalidInput


def validate(given, needed):
    """Check that every key in `needed` is present in `given`.

    Args:
        given: A mapping, a namedtuple (class or instance) or an iterable of
            names.
        needed: An iterable of names which must be present in `given`.

    Returns:
        `given`, unchanged.

    Raises:
        InvalidInput: If any of the names in `needed` is missing. The error
            message lists every missing name.
    """
    if hasattr(given, "_fields"):
        present = set(given._fields)
    else:
        present = set(given)

    missing = [key for key in needed if key not in present]
    if missing:
        raise InvalidInput(
            "Missing required keys: {}.".format(", ".join(map(str, missing))))
    return given


def _check_nonnegative(name, value):
    if not value >= 0:
        raise InvalidInput(
            "`{}` must be non-negative, got {}.".format(name, value))


def _check_count(name, value):
    if (not isinstance(value, numbers.Integral) or isinstance(value, bool)
            or value < 0):
        raise InvalidInput(
            "`{}` must be a non-negative integer, got {}.".format(name, value))


def _check_max_iter(max_iter):
    _check_count("max_iter", max_iter)
    if max_iter == 0:
        raise InvalidInput("`max_iter` must be positive.")


def _check_share(name, value):
    if not 0 < value <= 1:
        raise InvalidInput(
            "`{}` must be in (0, 1], got {}.".format(name, value))


_ConvergeConfig = collections.namedtuple(
    "ConvergeConfig",
    "diff_tol update_tol max_iter verbose message",
    defaults=(1e-6, 0., 200, False, "No convergence"),
)


class ConvergeConfig(_ConvergeConfig):
    """Parameters of the `converge` driver.

    Attributes:
        diff_tol (float): Stop once the deviation returned by the step
            function is below this tolerance. Defaults to `1e-6`.
        update_tol (float): Stop once the size returned by the update
            function is below this tolerance. This signals a stalled update,
            not convergence. Defaults to `0.`, which never stalls.
        max_iter (int): Maximum number of iterations. Defaults to `200`.
        verbose (bool): Log the deviation on every iteration.
        message (str): Warning emitted when `max_iter` is reached without
            convergence.
    """
    __slots__ = ()

    def check(self):
        _check_nonnegative("diff_tol", self.diff_tol)
        _check_nonnegative("update_tol", self.update_tol)
        _check_max_iter(self.max_iter)
        return self


_DampenConfig = collections.namedtuple(
    "DampenConfig",
    "loosen_step tighten_step min_dampen max_dampen scale overshoot_share "
    "grace_period tighten_wait loosen_wait",
    defaults=(-0.01, 0.01, 0., 0.999, 0.925, 0.5, 50, 30, 40),
)


class DampenConfig(_DampenConfig):
    """Parameters of the adaptive dampening controller.

    Attributes:
        loosen_step (float): Added to the dampening factor when loosening.
            Negative, so that loosening lowers the factor.
        tighten_step (float): Added to the dampening factor when tightening.
        min_dampen (float): Lower bound of the dampening factor.
        max_dampen (float): Upper bound of the dampening factor, below one.
        scale (float): Loosening only resumes once the deviation falls below
            `scale` times the reference deviation.
        overshoot_share (float): Share of the deviations which must flip sign
            for the iteration to be considered overshooting.
        grace_period (int): Number of iterations before any adjustment.
        tighten_wait (int): Minimum number of iterations between tightenings.
        loosen_wait (int): Minimum number of iterations between loosenings.
    """
    __slots__ = ()

    def check(self):
        if not 0 <= self.min_dampen <= self.max_dampen < 1:
            raise InvalidInput((
                "Dampening bounds must satisfy 0 <= min_dampen <= max_dampen "
                "< 1, got min_dampen={} and max_dampen={}.").format(
                    self.min_dampen, self.max_dampen))
        if self.loosen_step > 0:
            raise InvalidInput(
                "`loosen_step` must not be positive, got {}.".format(
                    self.loosen_step))
        _check_nonnegative("tighten_step", self.tighten_step)
        _check_share("scale", self.scale)
        _check_share("overshoot_share", self.overshoot_share)
        _check_count("grace_period", self.grace_period)
        _check_count("tighten_wait", self.tighten_wait)
        _check_count("loosen_wait", self.loosen_wait)
        return self


_NewtonConfig = collections.namedtuple(
    "NewtonConfig",
    "verbose step_tol f_tol max_iter message lower upper",
    defaults=(False, 1e-8, None, 750, "No Newton convergence", -math.inf,
              math.inf),
)


class NewtonConfig(_NewtonConfig):
    """Parameters of the bounded `newton` solver.

    Attributes:
        verbose (bool): Log the iterate on every iteration.
        step_tol (float): Stop once the absolute step size is below this.
        f_tol (float or None): Stop once the absolute function value is below
            this. `None` means `step_tol`.
        max_iter (int): Maximum number of iterations.
        message (str): Warning emitted when `max_iter` is reached.
        lower (float): Left bound of the search interval.
        upper (float): Right bound of the search interval.
    """
    __slots__ = ()

    @property
    def function_tol(self):
        return self.step_tol if self.f_tol is None else self.f_tol

    def check(self):
        _check_nonnegative("step_tol", self.step_tol)
        _check_nonnegative("f_tol", self.function_tol)
        _check_max_iter(self.max_iter)
        if not self.lower < self.upper:
            raise InvalidInput(
                "`lower` must be smaller than `upper`, got {} and {}.".format(
                    self.lower, self.upper))
        return self


def make_config(cls, config=None, **overrides):
    """Build a checked configuration record of type `cls`.

    Args:
        cls: One of the configuration record types.
        config (optional): `None` for the defaults, an instance of `cls`, or
            a mapping of field names to values.
        **overrides: Field values taking precedence over `config`.

    Returns:
        An instance of `cls` whose fields have been checked.

    Raises:
        InvalidInput: If a name is not a field of `cls` or a value is out of
            range.
    """
    if config is None:
        config = cls()
    elif not isinstance(config, cls):
        validate(cls, config)
        config = cls(**config)

    if overrides:
        validate(cls, overrides)
        config = config._replace(**overrides)

    return config.check()
