"""
Conditional data: extra forecast-horizon periods appended to the data matrix.

- none: nothing appended
- semi: quarterly averages of the quarter-to-date high-frequency observations
  (e.g. monthly or daily readings of the nominal rate)
- full: semi, plus nowcasts for the remaining observables
"""
import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import DimensionMismatch
from .settings import CondType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConditionalInputs:
    """
    highfreq: DataFrame with a DatetimeIndex, one column per observable that
        has high-frequency readings for the conditional quarter(s).
    nowcasts: DataFrame (indexed by quarter, or positionally) or a mapping
        observable -> sequence of values, one per conditional period.
    """
    highfreq: pd.DataFrame = None
    nowcasts: object = None


def _check_columns(frame, observables, what):
    unknown = [col for col in frame.columns if col not in observables]
    if unknown:
        raise DimensionMismatch(f"{what} refers to unknown observables: {unknown}")


def quarter_to_date_averages(highfreq):
    """
    Simple average of the available observations in each quarter.
    """
    if not isinstance(highfreq.index, pd.DatetimeIndex):
        raise TypeError("High-frequency data must be indexed by a DatetimeIndex")
    quarterly = highfreq.groupby(highfreq.index.to_period("Q")).mean()
    quarterly.index.name = "quarter"
    return quarterly.sort_index()


def _nowcast_frame(nowcasts):
    frame = nowcasts if isinstance(nowcasts, pd.DataFrame) else pd.DataFrame(dict(nowcasts))
    if isinstance(frame.index, pd.DatetimeIndex):
        frame = frame.set_axis(frame.index.to_period("Q"), axis=0)
    elif isinstance(frame.index, pd.PeriodIndex):
        frame = frame.set_axis(frame.index.asfreq("Q"), axis=0)
    return frame.astype(float)


def conditional_frame(cond_type, observables, inputs=None):
    """
    Builds the conditional periods as a DataFrame (periods x observables).
    Series without conditional information are NaN.
    """
    cond_type = CondType.parse(cond_type)
    observables = list(observables)
    inputs = inputs or ConditionalInputs()

    if cond_type == CondType.NONE:
        return pd.DataFrame(columns=observables, dtype=float)

    if inputs.highfreq is None:
        raise ValueError(f"cond_type={cond_type} requires high-frequency data for the semi-conditional periods")
    _check_columns(inputs.highfreq, observables, "High-frequency data")
    frame = quarter_to_date_averages(inputs.highfreq)

    if cond_type == CondType.FULL:
        if inputs.nowcasts is None:
            raise ValueError("cond_type=full requires nowcasts")
        nowcasts = _nowcast_frame(inputs.nowcasts)
        _check_columns(nowcasts, observables, "Nowcasts")
        if not isinstance(nowcasts.index, pd.PeriodIndex):
            # Positional nowcasts line up with the semi-conditional quarters
            frame = frame.reset_index(drop=True)
            nowcasts = nowcasts.reset_index(drop=True)
        # semi-conditional averages take precedence over nowcasts
        frame = frame.combine_first(nowcasts).sort_index()

    return frame.reindex(columns=observables)


def build_conditional_data(data, cond_type, observables, inputs=None):
    """
    Appends the conditional periods as trailing columns of the
    observables x periods data matrix.
    """
    data = np.asarray(data, dtype=float)
    observables = list(observables)
    if data.shape[0] != len(observables):
        raise DimensionMismatch(f"Data has {data.shape[0]} rows but {len(observables)} observables were given")

    frame = conditional_frame(cond_type, observables, inputs)
    if frame.empty:
        return data.copy()

    logger.debug("Appending %d conditional period(s) for cond_type=%s", len(frame), cond_type)
    return np.hstack([data, frame.to_numpy(dtype=float).T])


def n_conditional_periods(cond_type, observables, inputs=None):
    return len(conditional_frame(cond_type, observables, inputs))
