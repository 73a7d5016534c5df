class InvalidInput(ValueError):
    """Raised when an argument is malformed (mismatched shapes, a dampening
    factor outside of `[0, 1)`, negative tolerances, ...)."""


class NonConvergenceWarning(UserWarning):
    """Warned when an iteration budget is exhausted before convergence."""
