import numpy as np
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from descent_planner.dynamics.ephemeris import KeplerEphemeris, StateVector, SurfaceSite
from descent_planner.mission.guidance import BrakingGuidance
from descent_planner.mission.transfer_search import SearchConfiguration, SearchType, TrajectorySearch
from descent_planner.trajectory.lambert import InfeasibleTransferError

MU_MOON = 4902.800066
R_MOON = 1737.4
ROTATION_PERIOD = 2360592


def main():
    print("--- Braking Guidance Demo ---")

    r_park = R_MOON + 100.0
    v_park = np.sqrt(MU_MOON / r_park)
    parking = KeplerEphemeris(StateVector([r_park, 0.0, 0.0], [0.0, v_park, 0.0]), MU_MOON, ROTATION_PERIOD)
    site = SurfaceSite(latitude=0.0, longitude=80.0, terrain_height=R_MOON)
    config = SearchConfiguration(SearchType.MIN_DELTA_V, step_count=30, max_search_horizon=60.0,
                                 height_above_terrain=2.0)

    best = TrajectorySearch(parking, site, config).search().candidate
    print(f"Nominal transfer: depart t={best.departure_time:.1f} s, TOF={best.transfer_duration:.1f} s")

    # Execute the departure burn with a 0.5% magnitude error
    state = parking.predict_vehicle_state(best.departure_time)
    v_after = state.velocity + 1.005 * best.delta_v_vector
    coasting = KeplerEphemeris(StateVector(state.position, v_after), MU_MOON, ROTATION_PERIOD,
                               epoch=best.departure_time)

    search = TrajectorySearch(coasting, site, config)
    guidance = BrakingGuidance.from_candidate(search, best, cutoff=30.0, verbose=True)

    # Re-solve every 60 s, stop once the remaining time drops below the cutoff
    while not guidance.finished:
        coasting.advance(60.0)
        try:
            candidate = guidance.step()
        except InfeasibleTransferError as e:
            print(f"Guidance lost the transfer window: {e}")
            break
        if candidate is None:
            break
        direction = guidance.steering_direction(candidate)
        print(f"    steer {np.round(direction, 3)}")

    print(f"Guidance finished after {guidance.steps} steps, arrival at t={guidance.arrival_time:.1f} s")


if __name__ == "__main__":
    main()
