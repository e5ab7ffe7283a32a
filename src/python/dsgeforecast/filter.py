import numpy as np

from .settings import ForecastSettings, Smoother
from .system import compute_system
from .solvers.kalman import kalman_filter
from .solvers.smoothers import kalman_smoother, durbin_koopman_smoother


def filter(m, data, system=None, s0=None, P0=None, settings=None, include_presample=True):
    """
    Computes the filtered states for the state-space system of model m.

    Args:
        m: model object, used to compute the system if none is given
        data: observables x periods matrix, including any conditional periods
        system: System, computed from the current parameters of m if None
        s0, P0: optional initial state mean and covariance
        settings: ForecastSettings (n_presample_periods)

    Returns:
        KalmanOutput
    """
    settings = settings or ForecastSettings()
    if system is None:
        system = compute_system(m)
    return kalman_filter(data, system, s0, P0, n_presample=settings.n_presample_periods,
                         include_presample=include_presample)


def smooth(data, system, kal, settings=None, rng=None):
    """
    Runs the smoother selected by settings.forecast_smoother on the output of
    a full-sample filter pass. Presample periods are dropped from the result.
    """
    settings = settings or ForecastSettings()
    kwargs = dict(n_presample=settings.n_presample_periods, include_presample=False,
                  pseudo=settings.forecast_pseudoobservables)
    if settings.forecast_smoother == Smoother.KALMAN:
        return kalman_smoother(data, system, kal, **kwargs)
    return durbin_koopman_smoother(data, system, kal, draw_states=settings.forecast_draw_states,
                                   rng=rng, **kwargs)


def filterandsmooth(m, data, system=None, s0=None, P0=None, settings=None, rng=None):
    """
    Computes the smoothed states, shocks and pseudo-observables.

    Returns:
        states: nstates x main-sample periods
        shocks: nshocks x main-sample periods (non-standardized)
        pseudo: npseudo x main-sample periods, None unless
            settings.forecast_pseudoobservables
        initial_states: smoothed state of the last presample period, used to
            compute the deterministic trend
    """
    settings = settings or ForecastSettings()
    if system is None:
        system = compute_system(m)
    data = np.asarray(data, dtype=float)

    ## 1. Filter
    kal = filter(m, data, system, s0, P0, settings=settings, include_presample=True)

    ## 2. Smooth
    smoothed = smooth(data, system, kal, settings=settings, rng=rng)

    return smoothed.states, smoothed.shocks, smoothed.pseudo, smoothed.initial_state
