import contextlib
import logging

import numpy as onp
import jax.numpy as np

from equilutils.errors import InvalidInput


def zero_safe(x):
    """Replace zeros by ones, for dividing safely by `x`."""
    x = np.asarray(x)
    return np.where(x == 0, np.ones_like(x), x)


def normalise(v, factor=None):
    """Divide `v` by `factor`.

    By default `factor` is the first element of `v` (made zero safe), which
    normalises nominal prices so the first good is the numeraire. Pass
    `factor=np.sum(v)` to normalise shares.
    """
    v = np.asarray(v)
    if factor is None:
        factor = zero_safe(v.ravel()[0])
    return v / factor


def chunk(v, n):
    """Split the vector `v` into consecutive pieces of length `n`.

    Returns:
        A tuple of arrays.
    """
    v = np.asarray(v)
    if n <= 0 or v.shape[0] % n != 0:
        raise InvalidInput(
            "Can't chunk a vector of length {} into pieces of length {}."
            .format(v.shape[0], n))
    return tuple(v[start:start + n] for start in range(0, v.shape[0], n))


def issquare(mat):
    return np.ndim(mat) == 2 and np.shape(mat)[0] == np.shape(mat)[1]


def _check_square(mat):
    if not issquare(mat):
        raise InvalidInput(
            "Expected a square matrix, got shape {}.".format(np.shape(mat)))


def diagonal(mat):
    _check_square(mat)
    return np.diagonal(np.asarray(mat))


def off_diagonal(mat):
    """Elements of a square matrix off its diagonal, in row-major order."""
    _check_square(mat)
    mat = np.asarray(mat)
    return mat[~np.eye(mat.shape[0], dtype=bool)]


@contextlib.contextmanager
def _logging_disabled():
    previous = logging.root.manager.disable
    logging.disable(logging.CRITICAL)
    try:
        yield
    finally:
        logging.disable(previous)


def quietly(func=None, *args, **kwargs):
    """Call `func(*args, **kwargs)` with logging disabled.

    Without arguments, return a context manager disabling logging instead:

        with quietly():
            converge(update, step, config={"verbose": True})
    """
    if func is None:
        return _logging_disabled()
    with _logging_disabled():
        return func(*args, **kwargs)


def pretty(columns, names=None, pad=8, digits=4, spacer=2):
    """Format named numeric columns as a fixed-width text table.

    Args:
        columns: A mapping from names to equal-length vectors, or a sequence
            of vectors.
        names (optional): Column headers. Defaults to the keys of `columns`,
            or to column positions.
        pad (int, optional): Column width.
        digits (int, optional): Number of digits to round to.
        spacer (int, optional): Number of spaces between columns.

    Returns:
        str: The table, one line per row after the header line.
    """
    if hasattr(columns, "keys"):
        if names is None:
            names = list(columns.keys())
        values = [columns[name] for name in names]
    else:
        values = list(columns)
        if names is None:
            names = range(len(values))

    names = [str(name) for name in names]
    values = [onp.atleast_1d(onp.asarray(column)) for column in values]
    if len(names) != len(values):
        raise InvalidInput("Got {} names for {} columns.".format(
            len(names), len(values)))
    if len({len(column) for column in values}) > 1:
        raise InvalidInput("All columns must have the same length.")

    sep = " " * spacer

    def line(cells):
        return sep.join("{:>{pad}}".format(cell, pad=pad) for cell in cells)

    lines = [line(names)]
    for row in zip(*values):
        lines.append(line(round(float(cell), digits) for cell in row))
    return "\n".join(lines)
