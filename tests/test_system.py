import numpy as np
import pytest

from dsgeforecast.errors import DimensionMismatch, MissingSystemMatrix
from dsgeforecast.models.an_schorfheide import AnSchorfheide
from dsgeforecast.system import System, compute_system


def _matrices():
    return dict(TTT=np.eye(2) * 0.5, RRR=np.eye(2), CCC=np.zeros(2), QQ=np.eye(2),
                ZZ=np.ones((3, 2)), DD=np.zeros(3), EE=np.eye(3))


def test_dimensions(small_system):
    assert small_system.n_states == 2
    assert small_system.n_shocks == 2
    assert small_system.n_observables == 3
    assert not small_system.has_pseudo
    assert small_system.n_pseudo == 0


@pytest.mark.parametrize("name, value", [
    ("TTT", np.eye(3)),
    ("ZZ", np.ones((3, 3))),
    ("DD", np.zeros(2)),
    ("EE", np.eye(2)),
    ("QQ", np.eye(3)),
    ("CCC", np.zeros(3)),
])
def test_inconsistent_shapes_raise(name, value):
    matrices = _matrices()
    matrices[name] = value
    with pytest.raises(DimensionMismatch):
        System(**matrices)


def test_pseudo_matrices_come_in_pairs():
    with pytest.raises(DimensionMismatch):
        System(**_matrices(), ZZ_pseudo=np.ones((1, 2)))
    with pytest.raises(DimensionMismatch):
        System(**_matrices(), ZZ_pseudo=np.ones((1, 3)), DD_pseudo=np.zeros(1))


def test_arrays_are_read_only():
    source = _matrices()
    system = System(**source)
    with pytest.raises(ValueError):
        system.TTT[0, 0] = 1.0

    # the system keeps its own copy
    source["TTT"][0, 0] = 9.0
    assert system.TTT[0, 0] == 0.5


def test_require_names_missing_matrices(small_system):
    small_system.require("TTT", "ZZ")
    with pytest.raises(MissingSystemMatrix, match="ZZ_pseudo"):
        small_system.require("ZZ_pseudo", "DD_pseudo")


def test_compute_system_for_an_schorfheide():
    m = AnSchorfheide()
    system = compute_system(m)

    assert system.TTT.shape == (m.n_states, m.n_states)
    assert system.ZZ.shape == (m.n_observables, m.n_states)
    assert system.has_pseudo
    assert system.n_pseudo == m.n_pseudo_observables
    np.testing.assert_allclose(np.diag(system.QQ), [m["sigma_z"]**2, m["sigma_g"]**2, m["sigma_R"]**2])


def test_from_solution_uses_given_transition(ar_model):
    TTT, RRR, CCC = ar_model.solve()
    system = System.from_solution(ar_model, TTT * 0.5, RRR, CCC)
    np.testing.assert_allclose(system.TTT, TTT * 0.5)
    np.testing.assert_allclose(system.ZZ_pseudo, [[1.0, 1.0]])
