import pytest
import numpy as np
from descent_planner.dynamics.geometry import (
    OrbitShape,
    angle_between_positions,
    ascending_node_vector,
    eccentricity_vector,
    orbit_radius,
    orbit_shape,
    relative_inclination,
    specific_angular_momentum,
    state_to_orbital_elements,
    true_anomaly_of,
)

MU_EARTH = 398600.4418


def test_angle_to_itself_is_zero():
    r = np.array([7000.0, 1200.0, -300.0])
    assert angle_between_positions(r, r) == 0.0


def test_angle_to_opposite_is_180():
    r = np.array([7000.0, 1200.0, -300.0])
    assert np.isclose(angle_between_positions(r, -r), 180.0)


def test_angle_full_range():
    r1 = np.array([1.0, 0.0, 0.0])
    assert np.isclose(angle_between_positions(r1, np.array([0.0, 1.0, 0.0])), 90.0)
    # Clockwise about +Z reads as the long way round
    assert np.isclose(angle_between_positions(r1, np.array([0.0, -1.0, 0.0])), 270.0)
    assert np.isclose(angle_between_positions(r1, np.array([-1.0, -1.0, 0.0])), 225.0)


def test_angle_reference_axis_flips_direction():
    r1 = np.array([1.0, 0.0, 0.0])
    r2 = np.array([0.0, 1.0, 0.0])
    down = np.array([0.0, 0.0, -1.0])
    assert np.isclose(angle_between_positions(r1, r2, down), 270.0)


def test_angle_zero_vector_rejected():
    with pytest.raises(ValueError):
        angle_between_positions(np.zeros(3), np.array([1.0, 0.0, 0.0]))


def test_angular_momentum_normal_to_plane():
    r = np.array([7000.0, 0.0, 0.0])
    v = np.array([0.0, 7.5, 1.0])
    h = specific_angular_momentum(r, v)
    assert np.isclose(np.dot(h, r), 0.0)
    assert np.isclose(np.dot(h, v), 0.0)


def test_eccentricity_vector_points_to_periapsis():
    rp = 7000.0
    ra = 10000.0
    a = (rp + ra) / 2.0
    vp = np.sqrt(MU_EARTH * (2.0 / rp - 1.0 / a))

    r = np.array([0.0, rp, 0.0])
    v = np.array([-vp, 0.0, 0.0])
    e_vec = eccentricity_vector(r, v, MU_EARTH)

    e_expected = (ra - rp) / (ra + rp)
    assert np.isclose(np.linalg.norm(e_vec), e_expected)
    np.testing.assert_allclose(e_vec / np.linalg.norm(e_vec), [0.0, 1.0, 0.0], atol=1e-12)


def test_orbit_radius_apsides():
    a = 8500.0
    e = 0.2
    assert np.isclose(orbit_radius(0.0, e, a), a * (1 - e))
    assert np.isclose(orbit_radius(180.0, e, a), a * (1 + e))
    assert np.isclose(orbit_radius(90.0, e, a), a * (1 - e**2))


def test_relative_inclination_and_nodes():
    h1 = np.array([0.0, 0.0, 1.0])
    h2 = np.array([0.0, -np.sin(np.radians(30.0)), np.cos(np.radians(30.0))])
    assert np.isclose(relative_inclination(h1, h2), 30.0)
    assert np.isclose(relative_inclination(h1, h1), 0.0)

    node = ascending_node_vector(h1, h2)
    # Line of nodes lies in both planes
    assert np.isclose(np.dot(node, h1), 0.0)
    assert np.isclose(np.dot(node, h2), 0.0)
    assert node[0] > 0


def test_orbit_shape_circular():
    r = np.array([7000.0, 0.0, 0.0])
    v = np.array([0.0, np.sqrt(MU_EARTH / 7000.0), 0.0])
    shape = orbit_shape(r, v, MU_EARTH)

    assert np.isclose(shape.eccentricity, 0.0, atol=1e-9)
    assert np.isclose(shape.semi_major_axis, 7000.0)
    assert np.isclose(shape.period, 2 * np.pi * np.sqrt(7000.0**3 / MU_EARTH))


def test_orbit_shape_rejects_escape():
    r = np.array([7000.0, 0.0, 0.0])
    v = np.array([0.0, 1.5 * np.sqrt(2 * MU_EARTH / 7000.0), 0.0])
    with pytest.raises(ValueError):
        orbit_shape(r, v, MU_EARTH)
    with pytest.raises(ValueError):
        OrbitShape(eccentricity=1.0, semi_major_axis=7000.0, period=1.0)


def test_true_anomaly_of_state():
    rp = 7000.0
    ra = 12000.0
    a = (rp + ra) / 2.0
    vp = np.sqrt(MU_EARTH * (2.0 / rp - 1.0 / a))
    r = np.array([rp, 0.0, 0.0])
    v = np.array([0.0, vp, 0.0])
    nu = float(true_anomaly_of(r, v, MU_EARTH))
    assert min(nu, 360.0 - nu) < 1e-6

    # Retrograde motion is still measured in the direction of travel
    nu = float(true_anomaly_of(r, -v, MU_EARTH))
    assert min(nu, 360.0 - nu) < 1e-6


def test_state_to_coe():
    # Circular equatorial orbit
    r = np.array([7000.0, 0.0, 0.0])
    v_circ = np.sqrt(MU_EARTH / 7000.0)
    v = np.array([0.0, v_circ, 0.0])

    eles = state_to_orbital_elements(r, v, MU_EARTH)

    assert np.isclose(eles['e'], 0.0, atol=1e-5)
    assert np.isclose(eles['a'], 7000.0, rtol=1e-3)
    assert np.isclose(eles['i_deg'], 0.0)


def test_state_to_coe_inclined():
    r = np.array([7000.0, 0.0, 0.0])
    v_circ = np.sqrt(MU_EARTH / 7000.0)
    inc = np.radians(51.6)
    v = v_circ * np.array([0.0, np.cos(inc), np.sin(inc)])

    eles = state_to_orbital_elements(r, v, MU_EARTH)
    assert np.isclose(eles['i_deg'], 51.6)
    # Starts at the ascending node on +X
    assert np.isclose(eles['raan_deg'], 0.0, atol=1e-5)
