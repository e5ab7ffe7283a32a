import logging
from dataclasses import dataclass

import numpy as np
from scipy.linalg import solve, solve_discrete_lyapunov, LinAlgError

from ..errors import DimensionMismatch

logger = logging.getLogger(__name__)

DIFFUSE_VARIANCE = 1e6


@dataclass(frozen=True)
class KalmanOutput:
    """
    Output of one filter pass.

    Histories are states x periods; covariance histories are
    periods x states x states. loglh excludes the presample periods,
    loglh_t covers every period of the returned history.
    """
    loglh: float
    loglh_t: np.ndarray
    pred_states: np.ndarray
    pred_variances: np.ndarray
    states: np.ndarray
    variances: np.ndarray
    zend: np.ndarray
    Pend: np.ndarray
    s0: np.ndarray
    P0: np.ndarray
    n_presample: int = 0
    include_presample: bool = True

    @property
    def n_periods(self):
        return self.states.shape[1]


def symmetrize(P):
    return 0.5 * (P + P.T)


def init_stationary_states(TTT, RRR, CCC, QQ):
    """
    Unconditional mean and variance of the state vector.
    P = T P T' + R Q R'

    Falls back to s0 = C and a diffuse variance when TTT has a unit or
    explosive root.
    """
    n_states = TTT.shape[0]
    eigs = np.abs(np.linalg.eigvals(TTT)) if n_states else np.zeros(0)
    if np.all(eigs < 1.0):
        s0 = np.linalg.solve(np.eye(n_states) - TTT, CCC)
        P0 = symmetrize(solve_discrete_lyapunov(TTT, RRR @ QQ @ RRR.T))
    else:
        logger.warning("Transition matrix is not stationary (max |eig| = %.4f); using diffuse initialization",
                       eigs.max())
        s0 = np.array(CCC, dtype=float)
        P0 = np.eye(n_states) * DIFFUSE_VARIANCE
    return s0, P0


def solve_innovation(F_t, rhs):
    """
    Solves F_t x = rhs; falls back to the pseudo-inverse if F_t is
    rank deficient.
    """
    try:
        return solve(F_t, rhs, assume_a='pos')
    except LinAlgError:
        logger.debug("Innovation covariance not positive definite; using pseudo-inverse")
        return np.linalg.pinv(F_t) @ rhs


def _loglh_contribution(v_t, F_t, F_inv_v):
    sign, logdet = np.linalg.slogdet(F_t)
    if sign <= 0:
        # pseudo-determinant over the non-null eigenvalues
        eig = np.linalg.eigvalsh(F_t)
        eig = eig[eig > np.finfo(float).eps * max(1.0, eig.max(initial=0.0)) * len(eig)]
        logdet = np.sum(np.log(eig))
        k = len(eig)
    else:
        k = len(v_t)
    return -0.5 * (k * np.log(2 * np.pi) + logdet + v_t @ F_inv_v)


def observed_subsystem(y_t, ZZ, DD, EE):
    """
    Restricts the measurement equation to the non-missing entries of y_t.
    Returns None if the whole period is missing.
    """
    non_missing = ~np.isnan(y_t)
    if not np.any(non_missing):
        return None
    return (y_t[non_missing], ZZ[non_missing, :], DD[non_missing],
            EE[np.ix_(non_missing, non_missing)])


def kalman_filter(data, system, s0=None, P0=None, n_presample=0, include_presample=True,
                  loglh_include_presample=False):
    """
    Kalman filter for a DSGE state-space system with missing data.

    Args:
        data: observables x periods matrix, NaN for missing values
        system: System
        s0, P0: initial state mean and covariance. Default to the stationary
            distribution of the system.
        n_presample: number of initial periods excluded from loglh
        include_presample: keep presample periods in the returned histories
        loglh_include_presample: add the presample periods to loglh

    Returns:
        KalmanOutput
    """
    data = np.asarray(data, dtype=float)
    if data.ndim != 2 or data.shape[0] != system.n_observables:
        raise DimensionMismatch(
            f"Data has shape {data.shape}; expected {system.n_observables} observables (rows of ZZ)")
    n_periods = data.shape[1]
    if n_presample > n_periods:
        raise DimensionMismatch(f"{n_presample} presample periods exceed the {n_periods} data periods")

    TTT, RRR, CCC, QQ = system.TTT, system.RRR, system.CCC, system.QQ
    ZZ, DD, EE = system.ZZ, system.DD, system.EE
    n_states = system.n_states

    if s0 is None or P0 is None:
        s0_stat, P0_stat = init_stationary_states(TTT, RRR, CCC, QQ)
        s0 = s0_stat if s0 is None else s0
        P0 = P0_stat if P0 is None else P0
    s0 = np.asarray(s0, dtype=float).reshape(n_states)
    P0 = np.asarray(P0, dtype=float).reshape(n_states, n_states)

    s_pred_hist = np.zeros((n_states, n_periods))
    P_pred_hist = np.zeros((n_periods, n_states, n_states))
    s_filt_hist = np.zeros((n_states, n_periods))
    P_filt_hist = np.zeros((n_periods, n_states, n_states))
    loglh_t = np.zeros(n_periods)

    # Pre-calculate common terms
    RQR = RRR @ QQ @ RRR.T

    s_filt, P_filt = s0.copy(), P0.copy()
    for t in range(n_periods):
        # 1. Predict
        s_pred = CCC + TTT @ s_filt
        P_pred = symmetrize(TTT @ P_filt @ TTT.T + RQR)
        s_pred_hist[:, t] = s_pred
        P_pred_hist[t] = P_pred

        observed = observed_subsystem(data[:, t], ZZ, DD, EE)
        if observed is None:
            s_filt, P_filt = s_pred, P_pred
        else:
            y_t, ZZ_t, DD_t, EE_t = observed

            # 2. Innovation
            v_t = y_t - ZZ_t @ s_pred - DD_t
            PZ = P_pred @ ZZ_t.T
            F_t = symmetrize(ZZ_t @ PZ + EE_t)

            # 3. Update
            F_inv_v = solve_innovation(F_t, v_t)
            F_inv_ZP = solve_innovation(F_t, PZ.T)
            s_filt = s_pred + PZ @ F_inv_v
            P_filt = symmetrize(P_pred - PZ @ F_inv_ZP)

            # 4. Likelihood
            loglh_t[t] = _loglh_contribution(v_t, F_t, F_inv_v)

        s_filt_hist[:, t] = s_filt
        P_filt_hist[t] = P_filt

    loglh = float(np.sum(loglh_t if loglh_include_presample else loglh_t[n_presample:]))

    if not include_presample:
        s_pred_hist, s_filt_hist = s_pred_hist[:, n_presample:], s_filt_hist[:, n_presample:]
        P_pred_hist, P_filt_hist = P_pred_hist[n_presample:], P_filt_hist[n_presample:]
        loglh_t = loglh_t[n_presample:]

    return KalmanOutput(loglh=loglh, loglh_t=loglh_t,
                        pred_states=s_pred_hist, pred_variances=P_pred_hist,
                        states=s_filt_hist, variances=P_filt_hist,
                        zend=s_filt.copy(), Pend=P_filt.copy(), s0=s0, P0=P0,
                        n_presample=n_presample, include_presample=include_presample)
