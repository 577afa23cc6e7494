import pytest
import numpy as np
from descent_planner.trajectory.maneuver import G0, ImpulsiveManeuver, PropulsionModel, estimate_burn_duration
from descent_planner.mission.transfer_search import TransferCandidate


def test_zero_delta_v_takes_no_time():
    assert estimate_burn_duration(0.0, 5000.0, 60000.0, 320.0) == 0.0


def test_burn_duration_monotonic():
    dvs = np.linspace(0.0, 3000.0, 50)
    durations = [estimate_burn_duration(dv, 5000.0, 60000.0, 320.0) for dv in dvs]
    assert np.all(np.diff(durations) > 0)


def test_burn_duration_rocket_equation():
    m0 = 10000.0
    thrust = 100000.0
    isp = 300.0
    dv = 1000.0

    v_e = isp * G0
    m_f = m0 / np.exp(dv / v_e)
    expected = (m0 - m_f) * v_e / thrust

    assert np.isclose(estimate_burn_duration(dv, m0, thrust, isp), expected)
    # Small burns approach the constant-mass estimate m*dv/F
    assert np.isclose(estimate_burn_duration(1.0, m0, thrust, isp), m0 * 1.0 / thrust, rtol=1e-3)


def test_burn_duration_rejects_bad_input():
    with pytest.raises(ValueError):
        estimate_burn_duration(-1.0, 1000.0, 1000.0, 300.0)
    with pytest.raises(ValueError):
        estimate_burn_duration(10.0, 1000.0, 0.0, 300.0)


def test_propulsion_model_uses_km_per_s():
    prop = PropulsionModel(mass=5000.0, thrust=60000.0, isp=320.0)
    assert np.isclose(prop.burn_duration(0.25), estimate_burn_duration(250.0, 5000.0, 60000.0, 320.0))


def test_impulsive_maneuver_no_error():
    dv = np.array([1.0, 0.0, 0.0])
    man = ImpulsiveManeuver(epoch=0.0, delta_v=dv)

    state = np.array([1000.0, 0.0, 0.0, 0.0, 1.0, 0.0])
    new_state = man.apply_to_state(state, epoch=0.0)

    assert np.allclose(new_state[0:3], state[0:3])  # Position unchanged
    assert np.allclose(new_state[3:6], np.array([1.0, 1.0, 0.0]))  # Velocity updated


def test_impulsive_maneuver_timing():
    dv = np.array([1.0, 0.0, 0.0])
    man = ImpulsiveManeuver(epoch=100.0, delta_v=dv)

    state = np.zeros(6)
    # Wrong time
    new_state = man.apply_to_state(state, epoch=0.0)
    assert np.allclose(new_state, state)

    # Correct time
    new_state = man.apply_to_state(state, epoch=100.0)
    assert new_state[3] == 1.0


def test_maneuver_from_candidate():
    candidate = TransferCandidate(
        departure_time=500.0,
        transfer_duration=1200.0,
        semi_major_axis=6900.0,
        departure_velocity=np.array([0.0, 7.0, 0.0]),
        delta_v=0.3,
        delta_v_vector=np.array([0.0, -0.3, 0.0]),
    )
    prop = PropulsionModel(mass=5000.0, thrust=60000.0, isp=320.0)
    man = ImpulsiveManeuver.from_candidate(candidate, prop)

    assert man.epoch == 500.0
    assert np.isclose(man.magnitude, 0.3)
    np.testing.assert_allclose(man.direction, [0.0, -1.0, 0.0])
    assert man.burn_duration > 0
    # Burn is centred on the impulse epoch
    assert np.isclose(man.burn_start_time, 500.0 - man.burn_duration / 2)


def test_maneuver_without_propulsion_is_instantaneous():
    man = ImpulsiveManeuver(epoch=10.0, delta_v=np.zeros(3))
    assert man.burn_start_time == 10.0
    np.testing.assert_allclose(man.direction, np.zeros(3))
