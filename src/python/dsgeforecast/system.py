"""
State-space system container.

Transition:   s_t = CCC + TTT s_{t-1} + RRR eps_t,   eps_t ~ N(0, QQ)
Measurement:  y_t = DD + ZZ s_t + u_t,               u_t ~ N(0, EE)
Pseudo:       p_t = DD_pseudo + ZZ_pseudo s_t
"""
from dataclasses import dataclass, fields

import numpy as np

from .errors import DimensionMismatch, MissingSystemMatrix


def _frozen_array(x, ndim):
    arr = np.array(x, dtype=float)
    if ndim == 1:
        arr = arr.reshape(-1)
    elif arr.ndim != 2:
        raise DimensionMismatch(f"Expected a matrix, got array with shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class System:
    TTT: np.ndarray
    RRR: np.ndarray
    CCC: np.ndarray
    QQ: np.ndarray
    ZZ: np.ndarray
    DD: np.ndarray
    EE: np.ndarray
    ZZ_pseudo: np.ndarray = None
    DD_pseudo: np.ndarray = None

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            ndim = 1 if f.name in ("CCC", "DD", "DD_pseudo") else 2
            object.__setattr__(self, f.name, _frozen_array(value, ndim))
        self._validate()

    def _validate(self):
        n = self.TTT.shape[0]
        if self.TTT.shape != (n, n):
            raise DimensionMismatch(f"TTT must be square, got {self.TTT.shape}")
        if self.RRR.shape[0] != n:
            raise DimensionMismatch(f"RRR has {self.RRR.shape[0]} rows, expected {n}")
        if self.CCC.shape != (n,):
            raise DimensionMismatch(f"CCC has length {self.CCC.shape[0]}, expected {n}")
        n_shocks = self.RRR.shape[1]
        if self.QQ.shape != (n_shocks, n_shocks):
            raise DimensionMismatch(f"QQ has shape {self.QQ.shape}, expected {(n_shocks, n_shocks)}")
        if self.ZZ.shape[1] != n:
            raise DimensionMismatch(f"ZZ has {self.ZZ.shape[1]} columns, expected {n} (rows of TTT)")
        n_obs = self.ZZ.shape[0]
        if self.DD.shape != (n_obs,):
            raise DimensionMismatch(f"DD has length {self.DD.shape[0]}, expected {n_obs}")
        if self.EE.shape != (n_obs, n_obs):
            raise DimensionMismatch(f"EE has shape {self.EE.shape}, expected {(n_obs, n_obs)}")

        if (self.ZZ_pseudo is None) != (self.DD_pseudo is None):
            raise DimensionMismatch("ZZ_pseudo and DD_pseudo must be given together")
        if self.ZZ_pseudo is not None:
            if self.ZZ_pseudo.shape[1] != n:
                raise DimensionMismatch(f"ZZ_pseudo has {self.ZZ_pseudo.shape[1]} columns, expected {n}")
            if self.DD_pseudo.shape != (self.ZZ_pseudo.shape[0],):
                raise DimensionMismatch(
                    f"DD_pseudo has length {self.DD_pseudo.shape[0]}, expected {self.ZZ_pseudo.shape[0]}")

    @property
    def n_states(self):
        return self.TTT.shape[0]

    @property
    def n_shocks(self):
        return self.RRR.shape[1]

    @property
    def n_observables(self):
        return self.ZZ.shape[0]

    @property
    def has_pseudo(self):
        return self.ZZ_pseudo is not None

    @property
    def n_pseudo(self):
        return self.ZZ_pseudo.shape[0] if self.has_pseudo else 0

    def require(self, *names):
        missing = [name for name in names if getattr(self, name, None) is None]
        if missing:
            raise MissingSystemMatrix(f"System is missing required matrices: {missing}")

    @classmethod
    def from_solution(cls, model, TTT, RRR, CCC):
        """
        Assembles the system from transition matrices (solved or precomputed)
        and the model's measurement equations.
        """
        ZZ, DD, QQ, EE = model.measurement(TTT, RRR, CCC)
        pseudo = model.pseudo_measurement(TTT, RRR, CCC)
        ZZ_pseudo, DD_pseudo = pseudo if pseudo is not None else (None, None)
        return cls(TTT, RRR, CCC, QQ, ZZ, DD, EE, ZZ_pseudo, DD_pseudo)


def compute_system(model):
    """
    Solves the model at its current parameters and builds the state-space system.
    Solver errors propagate to the caller.
    """
    TTT, RRR, CCC = model.solve()
    return System.from_solution(model, TTT, RRR, CCC)
