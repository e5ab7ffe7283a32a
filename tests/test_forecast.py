import numpy as np
import pytest

from conftest import simulate
from dsgeforecast.filter import filterandsmooth
from dsgeforecast.forecast import (forecast, shock_decompositions, deterministic_trend, counterfactuals,
                                   draw_forecast_shocks, iterate_states)
from dsgeforecast.models.an_schorfheide import AnSchorfheide
from dsgeforecast.solvers.kalman import kalman_filter
from dsgeforecast.system import System, compute_system


def test_zero_shock_forecast_follows_transition(small_system):
    z0 = np.array([1.0, -0.5])
    states, obs, pseudo, shocks = forecast(small_system, z0, horizon=3)

    expected = []
    s = z0
    for _ in range(3):
        s = small_system.CCC + small_system.TTT @ s
        expected.append(s)
    np.testing.assert_allclose(states, np.column_stack(expected))
    np.testing.assert_allclose(obs, small_system.DD[:, None] + small_system.ZZ @ states)
    np.testing.assert_array_equal(shocks, np.zeros((2, 3)))
    assert pseudo is None


def test_forecast_with_given_shocks(small_system):
    shocks = np.array([[1.0, 0.0], [0.0, 2.0]])
    states, _, _, _ = forecast(small_system, np.zeros(2), horizon=2, shocks=shocks)
    np.testing.assert_allclose(states, iterate_states(small_system.TTT, small_system.RRR, small_system.CCC,
                                                      np.zeros(2), shocks))

    with pytest.raises(ValueError):
        forecast(small_system, np.zeros(2), horizon=3, shocks=shocks)


def test_drawn_shocks_are_reproducible(small_system):
    a = draw_forecast_shocks(small_system.QQ, 5, np.random.default_rng(1))
    b = draw_forecast_shocks(small_system.QQ, 5, np.random.default_rng(1))
    assert a.shape == (2, 5)
    np.testing.assert_array_equal(a, b)


@pytest.mark.parametrize("horizon", [0, 8])
def test_decomposition_adds_up(small_system, small_data, horizon):
    states, shocks, _, initial_state = filterandsmooth(None, small_data, small_system)
    fshocks = draw_forecast_shocks(small_system.QQ, horizon, np.random.default_rng(0))
    fstates, fobs, _, _ = forecast(small_system, states[:, -1], horizon, fshocks)

    dec_states, dec_obs, _ = shock_decompositions(small_system, shocks, fshocks)
    trend_states, trend_obs, _ = deterministic_trend(small_system, initial_state, states.shape[1] + horizon)

    path_states = np.hstack([states, fstates])
    path_obs = np.hstack([small_system.DD[:, None] + small_system.ZZ @ states, fobs])
    np.testing.assert_allclose(dec_states.sum(axis=2) + trend_states, path_states, atol=1e-8)
    np.testing.assert_allclose(dec_obs.sum(axis=2) + trend_obs, path_obs, atol=1e-8)


def test_single_shock_decomposition_equals_path():
    system = System(TTT=np.array([[0.6]]), RRR=np.eye(1), CCC=np.zeros(1), QQ=np.eye(1),
                    ZZ=np.array([[2.0]]), DD=np.zeros(1), EE=np.array([[0.1]]))
    _, data = simulate(system, 15, seed=4)
    states, shocks, _, initial_state = filterandsmooth(None, data, system, s0=np.zeros(1), P0=np.zeros((1, 1)))

    fshocks = np.zeros((1, 6))
    fstates, _, _, _ = forecast(system, states[:, -1], 6, fshocks)
    dec_states, dec_obs, _ = shock_decompositions(system, shocks, fshocks)
    trend_states, _, _ = deterministic_trend(system, initial_state, 21)

    path = np.hstack([states, fstates])
    np.testing.assert_allclose(initial_state, [0.0], atol=1e-12)
    np.testing.assert_allclose(trend_states, 0.0, atol=1e-12)
    np.testing.assert_allclose(dec_states[:, :, 0], path, atol=1e-10)
    np.testing.assert_allclose(dec_obs[:, :, 0], system.ZZ @ path, atol=1e-10)


def test_counterfactual_removes_one_shock(small_system, small_data):
    states, shocks, _, initial_state = filterandsmooth(None, small_data, small_system)
    fshocks = np.zeros((2, 4))
    fstates, _, _, _ = forecast(small_system, states[:, -1], 4)

    dec_states, _, _ = shock_decompositions(small_system, shocks, fshocks)
    cf_states, cf_obs, cf_pseudo = counterfactuals(small_system, initial_state, shocks, fshocks)
    path = np.hstack([states, fstates])

    assert cf_states.shape == (2, small_data.shape[1] + 4, 2)
    assert cf_pseudo is None
    for i in range(2):
        np.testing.assert_allclose(cf_states[:, :, i], path - dec_states[:, :, i], atol=1e-8)
        np.testing.assert_allclose(cf_obs[:, :, i], small_system.DD[:, None] + small_system.ZZ @ cf_states[:, :, i])


def test_pseudo_outputs_on_an_schorfheide():
    m = AnSchorfheide()
    system = compute_system(m)
    kal = kalman_filter(simulate(system, 20, seed=0)[1], system)

    _, _, pseudo, _ = forecast(system, kal.zend, 4)
    dec_states, _, dec_pseudo = shock_decompositions(system, np.ones((3, 5)))

    assert pseudo.shape == (m.n_pseudo_observables, 4)
    assert dec_pseudo.shape == (m.n_pseudo_observables, 5, m.n_shocks_exogenous)
    np.testing.assert_allclose(dec_pseudo[:, :, 1], system.ZZ_pseudo @ dec_states[:, :, 1])
