import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def load_csv_data(filepath, model):
    """
    Loads data from a CSV file into an observables x periods matrix.
    The CSV should have a header row with observable names (e.g., obs_gdp, obs_cpi...).
    Missing observables are filled with NaN.
    """
    df = pd.read_csv(filepath)

    missing = [obs for obs in model.observables.keys() if obs not in df.columns]
    if missing:
        logger.warning("Missing observables in %s: %s. Filling with NaNs.", filepath, missing)
        for m in missing:
            df[m] = np.nan

    # Reorder columns to match model.observables
    return df[list(model.observables.keys())].to_numpy(dtype=float).T


def load_highfreq_csv(filepath, date_column="date"):
    """
    Loads high-frequency observations (monthly, daily) for the semi-conditional
    data, indexed by date.
    """
    df = pd.read_csv(filepath, parse_dates=[date_column])
    return df.set_index(date_column).sort_index()


def save_data_csv(filepath, model, data, start="2000-03-31"):
    """
    Writes an observables x periods matrix to CSV with quarterly dates.
    """
    df = pd.DataFrame(np.asarray(data).T, columns=list(model.observables.keys()))
    df.insert(0, "date", pd.period_range(start=start, periods=df.shape[0], freq="Q").to_timestamp(how="end").normalize())
    df.to_csv(filepath, index=False)
    logger.info("Saved %d periods of data to %s", df.shape[0], filepath)
