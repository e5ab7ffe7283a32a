"""
State and shock smoothers.

Both smoothers consume the data, the state-space system and the output of
kalman_filter run over the full sample (presample included), and return a
SmoothedOutput. The Durbin-Koopman smoother is the default used by the
forecast driver: it recovers the shocks in the same backward pass.
"""
import logging
from dataclasses import dataclass

import numpy as np
from scipy.linalg import eigh

from ..errors import DimensionMismatch
from .kalman import observed_subsystem, solve_innovation, symmetrize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmoothedOutput:
    states: np.ndarray
    shocks: np.ndarray
    shocks_standardized: np.ndarray
    initial_state: np.ndarray
    pseudo: np.ndarray = None
    variances: np.ndarray = None


def standardize_shocks(shocks, QQ):
    """
    Divides each shock by its standard deviation. Shocks with zero variance
    stay at zero.
    """
    sd = np.sqrt(np.clip(np.diag(QQ), 0.0, None))
    out = np.zeros_like(shocks)
    nonzero = sd > 0
    out[nonzero, :] = shocks[nonzero, :] / sd[nonzero, None]
    return out


def psd_solve(P, rhs, rtol=1e-10):
    """
    Solves P x = rhs for a symmetric positive semi-definite P, restricted to
    the range of P (pseudo-inverse). Predicted state covariances of DSGE
    models are typically singular because of lags and expectation states.
    """
    w, V = eigh(P)
    keep = w > rtol * max(w.max(initial=0.0), np.finfo(float).tiny)
    Vk, wk = V[:, keep], w[keep]
    proj = Vk.T @ rhs
    if proj.ndim == 1:
        return Vk @ (proj / wk)
    return Vk @ (proj / wk[:, None])


def _check_inputs(data, system, kal, pseudo, n_presample):
    data = np.asarray(data, dtype=float)
    if data.shape[0] != system.n_observables:
        raise DimensionMismatch(f"Data has {data.shape[0]} rows, expected {system.n_observables}")
    if kal.n_periods != data.shape[1]:
        raise DimensionMismatch(
            f"Filter output covers {kal.n_periods} periods but data has {data.shape[1]}; "
            "run kalman_filter with include_presample=True")
    if n_presample > data.shape[1]:
        raise DimensionMismatch(f"{n_presample} presample periods exceed the {data.shape[1]} data periods")
    system.require("TTT", "RRR", "CCC", "QQ", "ZZ", "DD", "EE")
    if pseudo:
        system.require("ZZ_pseudo", "DD_pseudo")
    return data


def _finish(system, states, shocks, s_init, n_presample, include_presample, pseudo, variances=None):
    """
    Drops presample periods if requested and maps states to pseudo-observables.
    initial_state is the smoothed state just before the first returned period.
    """
    if not include_presample and n_presample > 0:
        initial_state = states[:, n_presample - 1].copy()
        states, shocks = states[:, n_presample:], shocks[:, n_presample:]
        if variances is not None:
            variances = variances[n_presample:]
    else:
        initial_state = s_init

    pseudo_out = None
    if pseudo:
        pseudo_out = system.DD_pseudo[:, None] + system.ZZ_pseudo @ states

    return SmoothedOutput(states=states, shocks=shocks,
                          shocks_standardized=standardize_shocks(shocks, system.QQ),
                          initial_state=initial_state, pseudo=pseudo_out, variances=variances)


def kalman_smoother(data, system, kal, n_presample=0, include_presample=True, pseudo=False):
    """
    Fixed-interval (Rauch-Tung-Striebel) smoother.

    s_smooth(t) = s_filt(t) + J(t) (s_smooth(t+1) - s_pred(t+1))
    J(t) = P_filt(t) T' P_pred(t+1)^-1

    Shocks are recovered as eps(t) = Q R' P_pred(t)^-1 (s_smooth(t) - s_pred(t)).
    """
    data = _check_inputs(data, system, kal, pseudo, n_presample)
    TTT, RRR, QQ = system.TTT, system.RRR, system.QQ

    s_filt, P_filt = kal.states, kal.variances
    s_pred, P_pred = kal.pred_states, kal.pred_variances
    n_periods = data.shape[1]

    s_smooth = np.zeros_like(s_filt)
    P_smooth = np.zeros_like(P_filt)
    shocks = np.zeros((system.n_shocks, n_periods))
    if n_periods == 0:
        return _finish(system, s_smooth, shocks, kal.s0.copy(), n_presample, include_presample, pseudo, P_smooth)

    s_smooth[:, -1] = s_filt[:, -1]
    P_smooth[-1] = P_filt[-1]

    # 1. State smoothing
    for t in range(n_periods - 2, -1, -1):
        J_t = psd_solve(P_pred[t + 1], TTT @ P_filt[t]).T
        s_smooth[:, t] = s_filt[:, t] + J_t @ (s_smooth[:, t + 1] - s_pred[:, t + 1])
        P_smooth[t] = symmetrize(P_filt[t] + J_t @ (P_smooth[t + 1] - P_pred[t + 1]) @ J_t.T)

    # Period-0 state, used as the starting point of the deterministic trend
    J_0 = psd_solve(P_pred[0], TTT @ kal.P0).T
    s_init = kal.s0 + J_0 @ (s_smooth[:, 0] - s_pred[:, 0])

    # 2. Shock smoothing
    QR = QQ @ RRR.T
    for t in range(n_periods):
        shocks[:, t] = QR @ psd_solve(P_pred[t], s_smooth[:, t] - s_pred[:, t])

    return _finish(system, s_smooth, shocks, s_init, n_presample, include_presample, pseudo, P_smooth)


def _disturbance_smoother(data, system, s0, P0):
    """
    Durbin and Koopman (2012, ch. 4) disturbance smoother followed by the
    fast state smoother. Returns smoothed states, shocks and the period-0 state.
    """
    TTT, RRR, CCC, QQ = system.TTT, system.RRR, system.CCC, system.QQ
    ZZ, DD, EE = system.ZZ, system.DD, system.EE
    n_states, n_periods = system.n_states, data.shape[1]
    RQR = RRR @ QQ @ RRR.T

    # Forward pass: store Z' F^-1 v and L = T - K Z for each period
    steps = []
    a, P = CCC + TTT @ s0, symmetrize(TTT @ P0 @ TTT.T + RQR)
    for t in range(n_periods):
        observed = observed_subsystem(data[:, t], ZZ, DD, EE)
        if observed is None:
            steps.append(None)
            a, P = CCC + TTT @ a, symmetrize(TTT @ P @ TTT.T + RQR)
            continue

        y_t, ZZ_t, DD_t, EE_t = observed
        v_t = y_t - ZZ_t @ a - DD_t
        PZ = P @ ZZ_t.T
        F_t = symmetrize(ZZ_t @ PZ + EE_t)
        F_inv_v = solve_innovation(F_t, v_t)
        F_inv_ZP = solve_innovation(F_t, PZ.T)

        K_t = TTT @ PZ @ solve_innovation(F_t, np.eye(len(v_t)))
        L_t = TTT - K_t @ ZZ_t
        steps.append((ZZ_t.T @ F_inv_v, L_t))

        a_filt = a + PZ @ F_inv_v
        P_filt = symmetrize(P - PZ @ F_inv_ZP)
        a, P = CCC + TTT @ a_filt, symmetrize(TTT @ P_filt @ TTT.T + RQR)

    # Backward pass: r(t-1) = Z' F^-1 v(t) + L(t)' r(t)
    r_hist = np.zeros((n_states, n_periods))
    r = np.zeros(n_states)
    for t in range(n_periods - 1, -1, -1):
        if steps[t] is None:
            r = TTT.T @ r
        else:
            ZFv, L_t = steps[t]
            r = ZFv + L_t.T @ r
        r_hist[:, t] = r

    shocks = QQ @ RRR.T @ r_hist
    r0 = r_hist[:, 0] if n_periods else np.zeros(n_states)
    s_init = s0 + P0 @ TTT.T @ r0

    states = np.zeros((n_states, n_periods))
    s = s_init
    for t in range(n_periods):
        s = CCC + TTT @ s + RRR @ shocks[:, t]
        states[:, t] = s

    return states, shocks, s_init


def durbin_koopman_smoother(data, system, kal, n_presample=0, include_presample=True, pseudo=False,
                            draw_states=False, rng=None):
    """
    Durbin-Koopman smoother.

    With draw_states=False returns the smoothed mean, which coincides with
    kalman_smoother. With draw_states=True returns a draw from the states and
    shocks conditional on the data (Durbin and Koopman, 2002): simulate states
    and data from the model, then shift the simulated path by the difference
    between the smoothed means of the actual and simulated data.
    """
    data = _check_inputs(data, system, kal, pseudo, n_presample)
    s0, P0 = kal.s0, kal.P0

    states, shocks, s_init = _disturbance_smoother(data, system, s0, P0)

    if draw_states:
        rng = rng if rng is not None else np.random.default_rng()
        n_periods = data.shape[1]
        TTT, RRR, CCC = system.TTT, system.RRR, system.CCC

        s_plus0 = rng.multivariate_normal(s0, P0, method='eigh')
        eps_plus = rng.multivariate_normal(np.zeros(system.n_shocks), system.QQ, size=n_periods,
                                           method='eigh').T
        u_plus = rng.multivariate_normal(np.zeros(system.n_observables), system.EE, size=n_periods,
                                         method='eigh').T

        states_plus = np.zeros((system.n_states, n_periods))
        s = s_plus0
        for t in range(n_periods):
            s = CCC + TTT @ s + RRR @ eps_plus[:, t]
            states_plus[:, t] = s

        data_plus = system.DD[:, None] + system.ZZ @ states_plus + u_plus
        data_plus[np.isnan(data)] = np.nan

        states_hat_plus, shocks_hat_plus, s_init_hat_plus = _disturbance_smoother(data_plus, system, s0, P0)
        states = states - states_hat_plus + states_plus
        shocks = shocks - shocks_hat_plus + eps_plus
        s_init = s_init - s_init_hat_plus + s_plus0

    return _finish(system, states, shocks, s_init, n_presample, include_presample, pseudo)
