"""Bachelier (normal) model pricing formulas on the forward."""

import numpy as np
from numpy.typing import ArrayLike

from vol_inversion.util import norm_cdf, norm_pdf


def _as_arrays(*args):
    return tuple(np.asarray(x, dtype=float) for x in args)


def bachelier_price(
    df: ArrayLike,
    f: ArrayLike,
    k: ArrayLike,
    t: ArrayLike,
    sigma: ArrayLike,
    is_call: ArrayLike,
) -> ArrayLike:
    """Bachelier pricing function.

    Args:
        df: Discount factor
        f: Forward
        k: Strike
        t: Time to maturity (year fraction)
        sigma: Normal (absolute) volatility
        is_call: call/put flag

    Returns: Contract price
    """
    df, f, k, t, sigma = _as_arrays(df, f, k, t, sigma)
    sign = np.where(np.asarray(is_call, dtype=bool), 1.0, -1.0)
    total_vol = sigma * np.sqrt(t)
    intrinsic = np.maximum(sign * (f - k), 0.0)

    with np.errstate(divide="ignore", invalid="ignore"):
        d = sign * (f - k) / total_vol
        value = sign * (f - k) * norm_cdf(d) + total_vol * norm_pdf(d)

    return df * np.where(total_vol > 0.0, value, intrinsic)


def bachelier_straddle_price(df: ArrayLike, f: ArrayLike, k: ArrayLike, t: ArrayLike, sigma: ArrayLike) -> ArrayLike:
    """Price of a call plus a put with the same strike."""
    df, f, k, t, sigma = _as_arrays(df, f, k, t, sigma)
    total_vol = sigma * np.sqrt(t)

    with np.errstate(divide="ignore", invalid="ignore"):
        d = (f - k) / total_vol
        value = (f - k) * (2.0 * norm_cdf(d) - 1.0) + 2.0 * total_vol * norm_pdf(d)

    return df * np.where(total_vol > 0.0, value, np.abs(f - k))


def bachelier_digital_price(df: ArrayLike, f: ArrayLike, k: ArrayLike, t: ArrayLike, sigma: ArrayLike) -> ArrayLike:
    df, f, k, t, sigma = _as_arrays(df, f, k, t, sigma)
    total_vol = sigma * np.sqrt(t)

    with np.errstate(divide="ignore", invalid="ignore"):
        value = norm_cdf((f - k) / total_vol)

    return df * np.where(total_vol > 0.0, value, np.where(f > k, 1.0, 0.0))


def bachelier_vega(df: ArrayLike, f: ArrayLike, k: ArrayLike, t: ArrayLike, sigma: ArrayLike) -> ArrayLike:
    """Derivative of the call (or put) price with respect to the normal volatility."""
    df, f, k, t, sigma = _as_arrays(df, f, k, t, sigma)
    total_vol = sigma * np.sqrt(t)
    return df * np.sqrt(t) * norm_pdf((f - k) / total_vol)


def normalised_call(x: float, v: float) -> float:
    """Undiscounted call price as a function of ``x = F - K`` and total volatility ``v = sigma sqrt(T)``."""
    if v <= 0.0:
        return max(x, 0.0)
    d = x / v
    return float(v * norm_pdf(d) + x * norm_cdf(d))
