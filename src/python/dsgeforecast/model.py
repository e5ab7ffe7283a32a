import numpy as np
from collections import OrderedDict

from .solvers.gensys import gensys


class Parameter:
    def __init__(self, name, value):
        self.name = name
        self.value = value

    def __repr__(self):
        return f"Parameter({self.name}={self.value})"


class AbstractModel:
    """
    Linearized DSGE model:

        gamma0 * s(t) = gamma1 * s(t-1) + c + psi * eps(t) + pi * eta(t)
        y(t) = DD + ZZ * s(t) + u(t)

    Subclasses fill the index dictionaries and implement eqcond and
    measurement (and pseudo_measurement if they define pseudo-observables).
    """
    def __init__(self):
        self.parameters = OrderedDict()
        self.endogenous_states = OrderedDict()
        self.exogenous_shocks = OrderedDict()
        self.expected_shocks = OrderedDict()
        self.equilibrium_conditions = OrderedDict()
        self.observables = OrderedDict()
        self.pseudo_observables = OrderedDict()

    def add_parameter(self, param):
        self.parameters[param.name] = param

    def __getitem__(self, key):
        if key in self.parameters:
            return self.parameters[key].value
        raise KeyError(key)

    @property
    def n_states(self):
        return len(self.endogenous_states)

    @property
    def n_shocks_exogenous(self):
        return len(self.exogenous_shocks)

    @property
    def n_shocks_expectational(self):
        return len(self.expected_shocks)

    @property
    def n_observables(self):
        return len(self.observables)

    @property
    def n_pseudo_observables(self):
        return len(self.pseudo_observables)

    def parameter_vector(self):
        return np.array([p.value for p in self.parameters.values()], dtype=float)

    def update(self, values):
        """
        Sets every parameter from a draw, in the order of self.parameters.
        """
        values = np.asarray(values, dtype=float).reshape(-1)
        if len(values) != len(self.parameters):
            raise ValueError(f"Parameter draw has {len(values)} values, model has {len(self.parameters)}")
        for param, val in zip(self.parameters.values(), values):
            param.value = float(val)

    def eqcond(self):
        raise NotImplementedError

    def measurement(self, TTT, RRR, CCC):
        raise NotImplementedError

    def pseudo_measurement(self, TTT, RRR, CCC):
        """
        Returns (ZZ_pseudo, DD_pseudo), or None if the model defines no
        pseudo-observables.
        """
        return None

    def solve(self):
        """
        Solves the model at the current parameters.

        Returns:
            TTT, RRR, CCC

        Raises:
            SolverError subclasses when gensys finds no unique stable solution.
        """
        gamma0, gamma1, c, psi, pi = self.eqcond()
        TTT, CCC, RRR, _ = gensys(gamma0, gamma1, c, psi, pi)
        return TTT, RRR, CCC

    def likelihood(self, data, settings=None):
        from .likelihood import likelihood as compute_likelihood
        return compute_likelihood(self, data, settings=settings)
