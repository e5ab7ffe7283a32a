import numpy as np
import pytest

from dsgeforecast.model import AbstractModel, Parameter
from dsgeforecast.system import System


class TwoShockAR(AbstractModel):
    """
    Two independent AR(1) states observed through three noisy series.
    Backward looking, so gensys needs no expectational errors.
    """
    def __init__(self, rho_1=0.8, rho_2=0.5):
        super().__init__()
        self.add_parameter(Parameter("rho_1", rho_1))
        self.add_parameter(Parameter("rho_2", rho_2))
        self.add_parameter(Parameter("sigma_1", 1.0))
        self.add_parameter(Parameter("sigma_2", 0.7))
        self.add_parameter(Parameter("mu", 0.5))
        self.endogenous_states.update({"x1": 0, "x2": 1})
        self.exogenous_shocks.update({"e1": 0, "e2": 1})
        self.observables.update({"obs_a": 0, "obs_b": 1, "obs_c": 2})
        self.pseudo_observables.update({"x_sum": 0})

    def eqcond(self):
        gamma0 = np.eye(2)
        gamma1 = np.diag([self["rho_1"], self["rho_2"]])
        c = np.array([self["mu"], 0.0])
        psi = np.eye(2)
        pi = np.zeros((2, 0))
        return gamma0, gamma1, c, psi, pi

    def measurement(self, TTT, RRR, CCC):
        ZZ = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
        DD = np.array([0.1, -0.2, 0.0])
        QQ = np.diag([self["sigma_1"]**2, self["sigma_2"]**2])
        EE = 0.1 * np.eye(3)
        return ZZ, DD, QQ, EE

    def pseudo_measurement(self, TTT, RRR, CCC):
        return np.array([[1.0, 1.0]]), np.array([0.0])


def simulate(system, n_periods, seed=0, s0=None):
    rng = np.random.default_rng(seed)
    s = np.zeros(system.n_states) if s0 is None else np.asarray(s0, dtype=float)
    states = np.zeros((system.n_states, n_periods))
    data = np.zeros((system.n_observables, n_periods))
    for t in range(n_periods):
        eps = rng.multivariate_normal(np.zeros(system.n_shocks), system.QQ)
        u = rng.multivariate_normal(np.zeros(system.n_observables), system.EE)
        s = system.CCC + system.TTT @ s + system.RRR @ eps
        states[:, t] = s
        data[:, t] = system.DD + system.ZZ @ s + u
    return states, data


@pytest.fixture
def ar_model():
    return TwoShockAR()


@pytest.fixture
def small_system():
    """Stationary 2-state, 2-shock, 3-observable system."""
    return System(
        TTT=np.array([[0.8, 0.1], [0.0, 0.5]]),
        RRR=np.eye(2),
        CCC=np.array([0.2, 0.0]),
        QQ=np.diag([1.0, 0.5]),
        ZZ=np.array([[1.0, 0.0], [0.0, 1.0], [1.0, -1.0]]),
        DD=np.array([0.5, 0.0, 1.0]),
        EE=np.diag([0.1, 0.2, 0.1]),
    )


@pytest.fixture
def small_data(small_system):
    _, data = simulate(small_system, 40, seed=1)
    return data
