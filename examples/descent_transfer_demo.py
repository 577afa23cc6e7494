import numpy as np
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from descent_planner.dynamics.ephemeris import KeplerEphemeris, StateVector, SurfaceSite
from descent_planner.mission.porkchop import PorkchopPlotter
from descent_planner.mission.transfer_search import SearchConfiguration, SearchType, TrajectorySearch
from descent_planner.trajectory.maneuver import ImpulsiveManeuver, PropulsionModel

# Moon
MU_MOON = 4902.800066      # km^3/s^2
R_MOON = 1737.4            # km
ROTATION_PERIOD = 2360592  # s (sidereal)


def main():
    print("====================================")
    print("   Lunar Descent Transfer Search    ")
    print("====================================")

    # 1. Vehicle in a 100 km circular equatorial parking orbit
    r_park = R_MOON + 100.0
    v_park = np.sqrt(MU_MOON / r_park)
    provider = KeplerEphemeris(StateVector([r_park, 0.0, 0.0], [0.0, v_park, 0.0]), MU_MOON, ROTATION_PERIOD)
    print(f"Parking orbit period: {provider.orbit.period / 60:.1f} min")

    # 2. Landing site 80 degrees ahead of the vehicle
    site = SurfaceSite(latitude=0.0, longitude=80.0, terrain_height=R_MOON)

    # 3. Search, aiming 2 km above the terrain
    config = SearchConfiguration.from_dict({
        'objective': 'MIN_DELTA_V',
        'step_count': 40,
        'max_search_horizon': 60.0,
        'height_above_terrain': 2.0,
    })
    search = TrajectorySearch(provider, site, config, verbose=True)
    result = search.search()
    best = result.candidate

    print(f"\nFeasible cells: {result.feasible_cells}/{result.cells_evaluated}")
    print(f"Departure:       t = {best.departure_time:.1f} s")
    print(f"Transfer time:   {best.transfer_duration:.1f} s")
    print(f"Transfer angle:  {best.transfer_angle:.2f} deg")
    print(f"Semi-major axis: {best.semi_major_axis:.2f} km")
    print(f"Delta-V:         {best.delta_v * 1000:.1f} m/s")

    # 4. Burn sizing for a small lander
    lander = PropulsionModel(mass=4500.0, thrust=15000.0, isp=311.0)
    burn = ImpulsiveManeuver.from_candidate(best, lander)
    print(f"Burn duration:   {burn.burn_duration:.1f} s (ignite at t = {burn.burn_start_time:.1f} s)")

    # 5. Delta-v map over the same grid
    search.verbose = False
    plotter = PorkchopPlotter(search)
    data = plotter.generate_data()
    plotter.plot(data, filename="lunar_descent_porkchop.png")


if __name__ == "__main__":
    main()
