"""Batch implied volatilities for a table of option quotes."""

import logging

import numpy as np
import pandas as pd
import pandera as pa
from pandera.pandas import Check, Column, DataFrameSchema

from vol_inversion.options.bachelier import DEFAULT_BACHELIER_APPROACH
from vol_inversion.options.black import DEFAULT_BLACK_APPROACH
from vol_inversion.protocols import ImpliedState, ImpliedVolApproach, OptionKind, OptionQuote, QuoteDomainError

logger = logging.getLogger(__name__)

MODELS = {"black": DEFAULT_BLACK_APPROACH, "bachelier": DEFAULT_BACHELIER_APPROACH}

quote_schema = DataFrameSchema(
    columns={
        "strike": Column(float, Check.gt(0), required=True),
        "forward": Column(float, Check.gt(0), required=True),
        "tau": Column(float, Check.ge(0), required=True),
        "price": Column(float, nullable=True, required=True),
        "option_type": Column(str, Check.isin([k.value for k in OptionKind]), required=True),
        "DF": Column(float, Check.gt(0), required=False),
    },
    coerce=True,
    strict=False,  # allows extra columns
)


def implied_vol_chain(
    df: pd.DataFrame,
    model: str = "black",
    approach: ImpliedVolApproach | None = None,
) -> pd.DataFrame:
    """Implied volatility of every row of a quote table.

    Args:
        df: Quotes with columns ``strike``, ``forward``, ``tau``, ``price`` (discounted), ``option_type``
            (``C``, ``P`` or ``S``) and optionally ``DF``.
        model: ``"black"`` or ``"bachelier"``, selects the default approach.
        approach: Overrides the default approach of the model.

    Returns:
        A copy of the validated table with ``implied_vol`` and ``state`` columns. Rows without a proper result keep
        the carried value (last iterate or NaN) and report their state.
    """
    if approach is None:
        try:
            approach = MODELS[model]
        except KeyError as e:
            msg = f"Unknown model {model!r}; expected one of {sorted(MODELS)}."
            raise ValueError(msg) from e

    try:
        out = quote_schema.validate(df).copy()
    except pa.errors.SchemaError as e:
        msg = f"Invalid quote table: {e}"
        raise ValueError(msg) from e

    discount = out["DF"] if "DF" in out.columns else pd.Series(1.0, index=out.index)

    vols = np.full(len(out), np.nan)
    states = []
    for i, (row, df_) in enumerate(zip(out.itertuples(index=False), discount, strict=True)):
        try:
            quote = OptionQuote(row.strike, row.forward, row.tau, row.price / df_)
        except QuoteDomainError as e:
            logger.debug("Row %d rejected: %s", i, e)
            states.append(ImpliedState.INPUT_ERROR.value)
            continue

        state, vol = approach.implied_vol(quote, OptionKind(row.option_type))
        vols[i] = vol
        states.append(state.value)

    n_failed = sum(s != ImpliedState.PROPER_RESULT.value for s in states)
    if n_failed:
        msg = f"{n_failed} of {len(out)} quotes have no proper implied volatility."
        logger.warning(msg)

    return out.assign(implied_vol=vols, state=states)
