import math

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import ArrayLike
from scipy.special import ndtr, ndtri

EPSILON = 1e-9
TINY_EPSILON = 1e-12
SUPER_TINY_EPSILON = 1e-15

ONE_OVER_SQRT_TWO_PI = 1.0 / math.sqrt(2.0 * math.pi)
SQRT_TWO_PI = math.sqrt(2.0 * math.pi)


def norm_cdf(x: ArrayLike) -> ArrayLike:
    """Standard normal cumulative distribution function."""
    return ndtr(x)


def norm_ppf(p: ArrayLike) -> ArrayLike:
    """Inverse of the standard normal cumulative distribution function."""
    return ndtri(p)


def norm_pdf(x: ArrayLike) -> ArrayLike:
    """Standard normal probability density function."""
    x = np.asarray(x, dtype=float)
    return np.exp(-0.5 * x * x) * ONE_OVER_SQRT_TWO_PI


def real_polynomial_roots(coefficients: ArrayLike, tol: float = 1e-8) -> np.ndarray:
    """Real roots of a polynomial given its coefficients in increasing order of degree.

    Roots with an imaginary part below ``tol`` (relative to their modulus) are treated as real.
    """
    coefficients = np.trim_zeros(np.asarray(coefficients, dtype=float), trim="b")
    if coefficients.size < 2:
        return np.empty(0)

    roots = P.polyroots(coefficients)
    is_real = np.abs(roots.imag) <= tol * np.maximum(1.0, np.abs(roots))
    return np.sort(roots[is_real].real)
