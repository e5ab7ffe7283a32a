import numpy as np


def _observables(system, states, constant=True):
    obs = system.ZZ @ states
    return obs + system.DD[:, None] if constant else obs


def _pseudo(system, states, constant=True):
    if not system.has_pseudo:
        return None
    pseudo = system.ZZ_pseudo @ states
    return pseudo + system.DD_pseudo[:, None] if constant else pseudo


def iterate_states(TTT, RRR, CCC, s_init, shocks):
    """
    s(t) = CCC + TTT s(t-1) + RRR eps(t), starting from s_init.
    shocks: nshocks x periods. Returns nstates x periods.
    """
    n_periods = shocks.shape[1]
    states = np.zeros((TTT.shape[0], n_periods))
    s_curr = np.asarray(s_init, dtype=float)
    for t in range(n_periods):
        s_curr = CCC + TTT @ s_curr + RRR @ shocks[:, t]
        states[:, t] = s_curr
    return states


def draw_forecast_shocks(QQ, horizon, rng=None):
    """
    Draws horizon periods of shocks from N(0, QQ). Returns nshocks x horizon.
    """
    rng = rng if rng is not None else np.random.default_rng()
    return rng.multivariate_normal(np.zeros(QQ.shape[0]), QQ, size=horizon, method='eigh').T


def forecast(system, z0, horizon=12, shocks=None):
    """
    Produces a forecast starting from the final state z0.

    Args:
        system: System
        z0: final (filtered or smoothed) state of the history
        horizon: quarters to forecast
        shocks: nshocks x horizon future shocks. Defaults to zero shocks.

    Returns:
        states: nstates x horizon
        obs: nobs x horizon
        pseudo: npseudo x horizon, None if the system has no pseudo-observables
        shocks: nshocks x horizon
    """
    if shocks is None:
        shocks = np.zeros((system.n_shocks, horizon))
    shocks = np.asarray(shocks, dtype=float)
    if shocks.shape != (system.n_shocks, horizon):
        raise ValueError(f"Forecast shocks have shape {shocks.shape}, expected {(system.n_shocks, horizon)}")

    states = iterate_states(system.TTT, system.RRR, system.CCC, z0, shocks)
    return states, _observables(system, states), _pseudo(system, states), shocks


def shock_decompositions(system, histshocks, forecastshocks=None):
    """
    Contribution of each shock to the states and observables over the history
    and forecast horizon: each shock propagated on its own from a zero state,
    without the constant.

    Returns:
        states: nstates x periods x nshocks
        obs: nobs x periods x nshocks
        pseudo: npseudo x periods x nshocks, or None
    """
    shocks = _stack_shocks(system, histshocks, forecastshocks)
    n_periods = shocks.shape[1]
    zero_constant = np.zeros(system.n_states)

    states = np.zeros((system.n_states, n_periods, system.n_shocks))
    for i in range(system.n_shocks):
        shocks_i = np.zeros_like(shocks)
        shocks_i[i, :] = shocks[i, :]
        states[:, :, i] = iterate_states(system.TTT, system.RRR, zero_constant, zero_constant, shocks_i)

    obs = np.einsum("os,stk->otk", system.ZZ, states)
    pseudo = np.einsum("ps,stk->ptk", system.ZZ_pseudo, states) if system.has_pseudo else None
    return states, obs, pseudo


def deterministic_trend(system, initial_state, n_periods):
    """
    Path of the states from initial_state with all shocks set to zero.
    Observables include the measurement constant DD.
    """
    shocks = np.zeros((system.n_shocks, n_periods))
    states = iterate_states(system.TTT, system.RRR, system.CCC, initial_state, shocks)
    return states, _observables(system, states), _pseudo(system, states)


def counterfactuals(system, initial_state, histshocks, forecastshocks=None):
    """
    Re-runs the transition equation once per shock, with that shock removed
    from the path.

    Returns:
        states: nstates x periods x nshocks
        obs: nobs x periods x nshocks
        pseudo: npseudo x periods x nshocks, or None
    """
    shocks = _stack_shocks(system, histshocks, forecastshocks)
    n_periods = shocks.shape[1]

    states = np.zeros((system.n_states, n_periods, system.n_shocks))
    for i in range(system.n_shocks):
        shocks_i = shocks.copy()
        shocks_i[i, :] = 0.0
        states[:, :, i] = iterate_states(system.TTT, system.RRR, system.CCC, initial_state, shocks_i)

    obs = np.einsum("os,stk->otk", system.ZZ, states) + system.DD[:, None, None]
    pseudo = None
    if system.has_pseudo:
        pseudo = np.einsum("ps,stk->ptk", system.ZZ_pseudo, states) + system.DD_pseudo[:, None, None]
    return states, obs, pseudo


def _stack_shocks(system, histshocks, forecastshocks):
    histshocks = np.asarray(histshocks, dtype=float)
    if forecastshocks is None:
        return histshocks
    return np.hstack([histshocks, np.asarray(forecastshocks, dtype=float).reshape(system.n_shocks, -1)])
