import numpy as np
import pandas as pd


def compute_irf(system, shock_idx, horizon=20, shock_size=1.0):
    """
    Impulse responses of the states to a shock of shock_size standard
    deviations. Returns nstates x horizon deviations from the steady state.
    """
    eps = np.zeros(system.n_shocks)
    eps[shock_idx] = shock_size * np.sqrt(system.QQ[shock_idx, shock_idx])

    states = np.zeros((system.n_states, horizon))
    states[:, 0] = system.RRR @ eps
    for t in range(1, horizon):
        states[:, t] = system.TTT @ states[:, t-1]
    return states


def irf_to_df(model, system, irf_states, observables=True):
    """
    Converts state IRFs to a DataFrame (quarters x variables), mapped to
    observables if requested.
    """
    if observables:
        df = pd.DataFrame((system.ZZ @ irf_states).T, columns=list(model.observables.keys()))
    else:
        df = pd.DataFrame(irf_states.T, columns=list(model.endogenous_states.keys()))
    df.index.name = "Quarter"
    return df
