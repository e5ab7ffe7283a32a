import numpy as np
import pytest

from dsgeforecast.errors import SolutionDoesNotExist, SolutionNotUnique, NumericalDegeneracy
from dsgeforecast.models.an_schorfheide import AnSchorfheide
from dsgeforecast.solvers.gensys import gensys


def forward_looking(a, rho=0.9):
    """
    y(t) = rho y(t-1) + eps(t)
    x(t) = a E_t x(t+1) + y(t)
    States: y, x, Ex = E_t x(t+1)
    """
    g0 = np.array([[1.0, 0.0, 0.0],
                   [-1.0, 1.0, -a],
                   [0.0, 1.0, 0.0]])
    g1 = np.array([[rho, 0.0, 0.0],
                   [0.0, 0.0, 0.0],
                   [0.0, 0.0, 1.0]])
    c = np.zeros(3)
    psi = np.array([[1.0], [0.0], [0.0]])
    pi = np.array([[0.0], [0.0], [1.0]])
    return g0, g1, c, psi, pi


def test_forward_looking_solution_matches_closed_form():
    a, rho = 0.5, 0.9
    TTT, CCC, RRR, eu = gensys(*forward_looking(a, rho))
    k = 1.0 / (1.0 - a * rho)

    # equilibrium: x = k y, Ex = rho k y
    v = np.array([1.0, k, rho * k])

    assert eu == [1, 1]
    np.testing.assert_allclose(TTT @ v, rho * v, atol=1e-10)
    np.testing.assert_allclose(RRR[:, 0], v, atol=1e-10)
    np.testing.assert_allclose(CCC, 0.0, atol=1e-12)
    np.testing.assert_allclose(np.max(np.abs(np.linalg.eigvals(TTT))), rho, atol=1e-10)

    # paths generated by the solution stay on the equilibrium manifold
    s = np.zeros(3)
    for eps in [1.0, -0.5, 0.3]:
        s = TTT @ s + RRR[:, 0] * eps
        np.testing.assert_allclose(s[1:], s[0] * v[1:], atol=1e-10)


def test_constant_maps_to_steady_state():
    g0 = np.eye(1)
    g1 = np.array([[0.5]])
    TTT, CCC, RRR, _ = gensys(g0, g1, np.array([1.0]), np.eye(1), np.zeros((1, 0)))
    # y = 0.5 y(-1) + 1 => steady state 2
    np.testing.assert_allclose(TTT, [[0.5]])
    np.testing.assert_allclose(CCC / (1.0 - TTT[0, 0]), [2.0])
    np.testing.assert_allclose(RRR, [[1.0]])


def test_an_schorfheide_solution_is_stable():
    m = AnSchorfheide()
    TTT, RRR, CCC = m.solve()

    assert TTT.shape == (m.n_states, m.n_states)
    assert RRR.shape == (m.n_states, m.n_shocks_exogenous)
    assert np.max(np.abs(np.linalg.eigvals(TTT))) < 1.0


def test_too_few_unstable_roots_is_not_unique():
    with pytest.raises(SolutionNotUnique) as excinfo:
        gensys(*forward_looking(a=2.0))
    assert excinfo.value.eu == [1, 0]


def test_explosive_backward_system_has_no_solution():
    with pytest.raises(SolutionDoesNotExist) as excinfo:
        gensys(np.eye(1), np.array([[1.5]]), np.zeros(1), np.eye(1), np.zeros((1, 0)))
    assert excinfo.value.eu[0] == 0


def test_coincident_zeros_are_degenerate():
    g0 = np.array([[1.0, 0.0], [0.0, 0.0]])
    g1 = np.array([[0.5, 0.0], [0.0, 0.0]])
    with pytest.raises(NumericalDegeneracy):
        gensys(g0, g1, np.zeros(2), np.eye(2), np.zeros((2, 0)))


def test_passive_policy_rejected_by_likelihood():
    m = AnSchorfheide()
    m.parameters["psi_1"].value = 0.5
    with pytest.raises(SolutionNotUnique):
        m.solve()

    data = np.random.default_rng(0).standard_normal((m.n_observables, 10))
    assert m.likelihood(data) == -np.inf


def test_non_finite_inputs_are_degenerate():
    g1 = np.array([[np.inf]])
    with pytest.raises(NumericalDegeneracy) as excinfo:
        gensys(np.eye(1), g1, np.zeros(1), np.eye(1), np.zeros((1, 0)))
    assert excinfo.value.eu == [-3, -3]
