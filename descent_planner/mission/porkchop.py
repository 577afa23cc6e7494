import warnings

import numpy as np
import matplotlib.pyplot as plt

from descent_planner.mission.transfer_search import TrajectorySearch


class PorkchopPlotter:
    """
    Generates delta-v maps ("porkchop plots") over the departure time / transfer
    duration grid of a TrajectorySearch.
    """
    def __init__(self, search: TrajectorySearch):
        """
        Args:
            search (TrajectorySearch): Search whose provider, site and grid are mapped.
        """
        self.search = search

    def generate_data(self, now: float = None) -> dict:
        """
        Evaluates every cell of the search grid.

        Args:
            now (float): Start of the scan. Defaults to the provider's current time.

        Returns:
            dict: {
                'delta_v': 2D array [km/s], NaN where infeasible,
                'elapsed': 2D array of departure offset + duration [s], NaN where infeasible,
                'semi_major_axis': 2D array [km], NaN where infeasible,
                'departure_times': 1D array [s],
                'transfer_durations': 1D array [s]
            }
            Rows index transfer durations, columns index departure times.
        """
        if now is None:
            now = self.search.provider.current_time()
        departure_times, durations = self.search.grid(now)

        shape = (len(durations), len(departure_times))
        dv_grid = np.full(shape, np.nan)
        elapsed_grid = np.full(shape, np.nan)
        sma_grid = np.full(shape, np.nan)

        if self.search.verbose:
            print(f"Generating delta-v map for {shape[1]}x{shape[0]} grid...")

        first_departure = departure_times[0]
        for i, j, candidate in self.search.scan(now):
            if candidate is None:
                continue
            dv_grid[j, i] = candidate.delta_v
            elapsed_grid[j, i] = candidate.elapsed_since(first_departure)
            sma_grid[j, i] = candidate.semi_major_axis

        return {
            'delta_v': dv_grid,
            'elapsed': elapsed_grid,
            'semi_major_axis': sma_grid,
            'departure_times': departure_times,
            'transfer_durations': durations,
        }

    def plot(self, data: dict, max_delta_v: float = None, filename: str = None):
        """
        Plots delta-v contours over the grid and marks the minimum.

        Args:
            data (dict): Result from generate_data.
            max_delta_v (float): Upper contour level [km/s]. Defaults to the largest feasible value.
            filename (str): If provided, save to file.

        Returns:
            matplotlib.figure.Figure: The figure.
        """
        dv = data['delta_v']
        t_dep = data['departure_times'] - data['departure_times'][0]
        tof = data['transfer_durations']

        X, Y = np.meshgrid(t_dep, tof)
        fig, ax = plt.subplots(figsize=(10, 8))

        feasible = np.isfinite(dv)
        if np.count_nonzero(feasible) < 2:
            warnings.warn("Delta-v map has fewer than two feasible cells, contours skipped.")
        else:
            dv_min = np.nanmin(dv)
            dv_max = np.nanmax(dv) if max_delta_v is None else max_delta_v
            if dv_max > dv_min:
                levels = np.linspace(dv_min, dv_max, 20)
                cs = ax.contour(X, Y, dv, levels=levels, cmap='viridis', linewidths=1.2)
                ax.clabel(cs, inline=1, fontsize=8, fmt='%1.3f')

        if np.any(feasible):
            min_idx = np.unravel_index(np.nanargmin(dv), dv.shape)
            ax.plot(X[min_idx], Y[min_idx], 'k*', markersize=12, label=f'Minimum: dV={dv[min_idx]:.3f} km/s')
            ax.legend()

        ax.set_title("Descent Transfer Delta-V (km/s)", fontsize=14)
        ax.set_xlabel("Departure offset from first trial (s)", fontsize=12)
        ax.set_ylabel("Transfer duration (s)", fontsize=12)

        plt.grid(True, alpha=0.3)
        plt.tight_layout()

        if filename:
            plt.savefig(filename, dpi=150)
            print(f"Plot saved to {filename}")
            plt.close(fig)
        return fig
