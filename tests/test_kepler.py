"""
Unit Tests for Analytical Two-Body Propagation
----------------------------------------------
Checks KeplerOrbit against numerical integration, and the ephemeris provider
built on it.
"""

import pytest
import numpy as np
from scipy.integrate import solve_ivp

from descent_planner.dynamics.ephemeris import KeplerEphemeris, StateVector, SurfaceSite
from descent_planner.dynamics.kepler import KeplerOrbit

MU_EARTH = 398600.4418


def two_body(t, y, mu):
    r = y[0:3]
    r_mag = np.linalg.norm(r)
    return np.concatenate((y[3:6], -mu * r / r_mag**3))


def integrate(r0, v0, dt, mu=MU_EARTH):
    sol = solve_ivp(two_body, (0.0, dt), np.concatenate((r0, v0)), args=(mu,), rtol=1e-11, atol=1e-12)
    return sol.y[0:3, -1], sol.y[3:6, -1]


@pytest.fixture
def elliptical_state():
    r0 = np.array([7500.0, 0.0, 0.0])
    v0 = np.array([0.0, 8.2, 0.8])
    return r0, v0


def test_matches_numerical_integration(elliptical_state):
    r0, v0 = elliptical_state
    orbit = KeplerOrbit(r0, v0, MU_EARTH, epoch=100.0)

    for dt in [300.0, 2500.0, 7000.0]:
        r_num, v_num = integrate(r0, v0, dt)
        r_kep, v_kep = orbit.state_at(100.0 + dt)
        np.testing.assert_allclose(r_kep, r_num, atol=1e-3, err_msg=f"Position mismatch after {dt} s")
        np.testing.assert_allclose(v_kep, v_num, atol=1e-6, err_msg=f"Velocity mismatch after {dt} s")


def test_state_at_epoch_is_initial_state(elliptical_state):
    r0, v0 = elliptical_state
    orbit = KeplerOrbit(r0, v0, MU_EARTH)
    r, v = orbit.state_at(0.0)
    np.testing.assert_allclose(r, r0, atol=1e-4)
    np.testing.assert_allclose(v, v0, atol=1e-7)


def test_backward_propagation(elliptical_state):
    r0, v0 = elliptical_state
    orbit = KeplerOrbit(r0, v0, MU_EARTH)
    r_past, v_past = orbit.state_at(-1200.0)

    # Coasting forward from the past state returns to the epoch state
    r_back, _ = integrate(r_past, v_past, 1200.0)
    np.testing.assert_allclose(r_back, r0, atol=1e-3)


def test_circular_quarter_period():
    r = 7000.0
    v_c = np.sqrt(MU_EARTH / r)
    orbit = KeplerOrbit(np.array([r, 0.0, 0.0]), np.array([0.0, v_c, 0.0]), MU_EARTH)

    r_q, v_q = orbit.state_at(orbit.period / 4)
    np.testing.assert_allclose(r_q, [0.0, r, 0.0], atol=1e-4)
    np.testing.assert_allclose(v_q, [-v_c, 0.0, 0.0], atol=1e-8)


def test_retrograde_orbit_moves_clockwise():
    r = 7000.0
    v_c = np.sqrt(MU_EARTH / r)
    orbit = KeplerOrbit(np.array([r, 0.0, 0.0]), np.array([0.0, -v_c, 0.0]), MU_EARTH)

    r_q, _ = orbit.state_at(orbit.period / 4)
    np.testing.assert_allclose(r_q, [0.0, -r, 0.0], atol=1e-4)


def test_rejects_escape_trajectory():
    with pytest.raises(ValueError):
        KeplerOrbit(np.array([7000.0, 0.0, 0.0]), np.array([0.0, 12.0, 0.0]), MU_EARTH)


def test_state_vector_is_read_only():
    state = StateVector([7000.0, 0.0, 0.0], [0.0, 7.5, 0.0])
    with pytest.raises(ValueError):
        state.position[0] = 1.0
    with pytest.raises(ValueError):
        StateVector([1.0, 2.0], [0.0, 0.0, 0.0])


def test_site_rotates_with_body():
    site = SurfaceSite(latitude=0.0, longitude=0.0, terrain_height=6378.0, epoch=0.0)
    rotation_period = 86164.0

    np.testing.assert_allclose(site.position_at(0.0, rotation_period), [6378.0, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(site.position_at(rotation_period / 4, rotation_period),
                               [0.0, 6378.0, 0.0], atol=1e-6)
    assert np.isclose(np.linalg.norm(site.position_at(123.0, rotation_period, 2.0)), 6380.0)


def test_site_latitude():
    site = SurfaceSite(latitude=90.0, longitude=45.0, terrain_height=1737.4)
    np.testing.assert_allclose(site.position_at(5000.0, 2360592.0), [0.0, 0.0, 1737.4], atol=1e-9)


def test_kepler_ephemeris_provider():
    r = 7000.0
    v_c = np.sqrt(MU_EARTH / r)
    provider = KeplerEphemeris(StateVector([r, 0.0, 0.0], [0.0, v_c, 0.0]), MU_EARTH, 86164.0, epoch=50.0)

    assert provider.current_time() == 50.0
    provider.advance(10.0)
    assert provider.current_time() == 60.0
    assert provider.gravitational_parameter() == MU_EARTH
    assert provider.body_rotation_period() == 86164.0

    state = provider.predict_vehicle_state(50.0 + provider.orbit.period / 2)
    np.testing.assert_allclose(state.position, [-r, 0.0, 0.0], atol=1e-4)
