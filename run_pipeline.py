import logging
import os

import numpy as np
import pandas as pd

from dsgeforecast.conditional import ConditionalInputs
from dsgeforecast.forecast_all import forecast_all
from dsgeforecast.models.an_schorfheide import AnSchorfheide
from dsgeforecast.settings import ForecastSettings
from dsgeforecast.store import DirectoryStore
from dsgeforecast.system import compute_system
from dsgeforecast.utils.data_loader import save_data_csv, load_csv_data

logger = logging.getLogger("run_pipeline")


def simulate_data(system, n_periods, rng):
    s = np.zeros(system.n_states)
    data = np.zeros((system.n_observables, n_periods))
    for t in range(n_periods):
        eps = rng.multivariate_normal(np.zeros(system.n_shocks), system.QQ)
        u = rng.multivariate_normal(np.zeros(system.n_observables), system.EE)
        s = system.CCC + system.TTT @ s + system.RRR @ eps
        data[:, t] = system.DD + system.ZZ @ s + u
    return data


def run_pipeline(work_dir="work", n_draws=20):
    rng = np.random.default_rng(42)

    # 1. Initialize
    logger.info("Step 1: Initializing model")
    m = AnSchorfheide()
    system = compute_system(m)

    # 2. Data (simulated at the calibrated parameters)
    logger.info("Step 2: Simulating data")
    data_file = os.path.join(work_dir, "data_sample.csv")
    os.makedirs(work_dir, exist_ok=True)
    save_data_csv(data_file, m, simulate_data(system, 80, rng))
    data = load_csv_data(data_file, m)

    # 3. Parameter inputs: the mode and a fake posterior sample around it
    logger.info("Step 3: Writing parameter draws")
    store = DirectoryStore(os.path.join(work_dir, "estimate"), os.path.join(work_dir, "forecast"))
    mode = m.parameter_vector()
    store.save_input("paramsmode", params=mode)
    draws = mode * (1.0 + 0.01 * rng.standard_normal((n_draws, len(mode))))
    store.save_input("mhsave", params=draws)

    # 4. Conditional data: two months of the current quarter for the nominal rate
    highfreq = pd.DataFrame({"obs_nominalrate": data[2, -1] + rng.normal(0.0, 0.1, 2)},
                            index=pd.date_range("2020-01-31", periods=2, freq="ME"))
    cond_inputs = ConditionalInputs(highfreq=highfreq, nowcasts={"obs_gdp": [data[0, -1]]})

    # 5. Forecast
    logger.info("Step 4: Forecasting")
    settings = ForecastSettings(n_presample_periods=4, forecast_horizons=12,
                                forecast_pseudoobservables=True, seed=0, n_workers=4)
    report = forecast_all(m, data, store,
                          cond_types=["none", "semi", "full"],
                          input_types=["mode", "full"],
                          output_types=["simple", "shockdec", "dettrend"],
                          settings=settings, cond_inputs=cond_inputs)

    logger.info("Wrote %d files, %d failed draws", len(report.written), report.n_failures)
    return report


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    run_pipeline()
