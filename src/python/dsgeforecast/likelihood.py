import logging

import numpy as np

from .errors import SolverError
from .settings import ForecastSettings
from .system import compute_system
from .solvers.kalman import kalman_filter

logger = logging.getLogger(__name__)


def likelihood(m, data, settings=None):
    """
    Computes the log-likelihood of the model given the data, excluding the
    presample periods.

    Returns -inf if the model has no unique stable solution at the current
    parameters, so that an estimation loop rejects the draw.
    """
    settings = settings or ForecastSettings()

    # 1. Solve the model and build the state-space system
    try:
        system = compute_system(m)
    except SolverError as e:
        logger.info("Rejecting parameters: %s (eu=%s)", e, e.eu)
        return -np.inf

    # 2. Kalman Filter, initialized at the stationary distribution
    kal = kalman_filter(data, system, n_presample=settings.n_presample_periods)
    return kal.loglh
