from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from descent_planner.dynamics.ephemeris import StateProvider, StateVector, SurfaceSite
from descent_planner.dynamics.geometry import angle_between_positions, orbit_shape
from descent_planner.trajectory.lambert import InfeasibleTransferError, LambertSolver


class InvalidConfigurationError(ValueError):
    pass


class NoFeasibleTransferError(RuntimeError):
    """The search grid was exhausted without accepting a single cell."""
    def __init__(self, message: str, cells_evaluated: int = 0):
        super().__init__(message)
        self.cells_evaluated = cells_evaluated


class SearchType(Enum):
    FIRST_FEASIBLE = 'first_feasible'
    MIN_DELTA_V = 'min_delta_v'
    MIN_TRANSFER_TIME = 'min_transfer_time'

    @classmethod
    def parse(cls, value) -> "SearchType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            if key.upper() in cls.__members__:
                return cls[key.upper()]
            for member in cls:
                if member.value == key.lower():
                    return member
        raise InvalidConfigurationError(f"Unrecognized search objective: {value!r}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


@dataclass(frozen=True)
class SearchConfiguration:
    """
    Parameters of one search invocation. Read-only during the search.

    Attributes:
        objective (SearchType): Selection policy for the winning cell.
        step_count (int): Number of steps along each grid axis.
        max_search_horizon (float): Safety delay before the first trial departure [s].
        height_above_terrain (float): Aim point height above the site [km].
        search_period (float): Span of both grid axes [s]. Defaults to the
            vehicle's orbital period when None.
    """
    objective: SearchType
    step_count: int
    max_search_horizon: float
    height_above_terrain: float = 0.0
    search_period: Optional[float] = None

    def __post_init__(self):
        errors: List[str] = []

        try:
            object.__setattr__(self, 'objective', SearchType.parse(self.objective))
        except InvalidConfigurationError as e:
            errors.append(str(e))

        if not isinstance(self.step_count, (int, np.integer)) or isinstance(self.step_count, bool) or self.step_count <= 0:
            errors.append(f"step_count must be a positive integer, got {self.step_count!r}")
        if not _is_number(self.max_search_horizon) or self.max_search_horizon < 0:
            errors.append(f"max_search_horizon must be >= 0, got {self.max_search_horizon!r}")
        if not _is_number(self.height_above_terrain) or self.height_above_terrain < 0:
            errors.append(f"height_above_terrain must be >= 0, got {self.height_above_terrain!r}")
        if self.search_period is not None and (not _is_number(self.search_period) or self.search_period <= 0):
            errors.append(f"search_period must be > 0 when given, got {self.search_period!r}")

        if errors:
            raise InvalidConfigurationError("; ".join(errors))

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "SearchConfiguration":
        """
        Builds a configuration from a plain mapping, e.g. parsed JSON.
        The objective may be given by name ("MIN_DELTA_V" or "min_delta_v").
        """
        if not isinstance(cfg, Mapping):
            raise InvalidConfigurationError("search configuration must be a mapping")

        missing = [k for k in ('objective', 'step_count', 'max_search_horizon') if k not in cfg]
        unknown = [k for k in cfg if k not in cls.__dataclass_fields__]
        errors = [f"Missing key: {k}" for k in missing] + [f"Unknown key: {k}" for k in unknown]
        if errors:
            raise InvalidConfigurationError("; ".join(errors))
        return cls(**dict(cfg))


@dataclass(frozen=True, eq=False)
class TransferCandidate:
    """
    One solved (departure time, transfer duration) cell.

    Attributes:
        departure_time (float): Time of the departure impulse [s].
        transfer_duration (float): Time of flight [s].
        semi_major_axis (float): Transfer ellipse semi-major axis [km].
        departure_velocity (np.ndarray): Velocity required at departure [km/s].
        delta_v (float): Magnitude of the departure impulse [km/s].
        delta_v_vector (np.ndarray): Departure impulse [km/s].
        departure_position (np.ndarray): Vehicle position at departure [km].
        arrival_position (np.ndarray): Aim point at arrival [km].
        transfer_angle (float): Angle swept during the transfer [deg].
    """
    departure_time: float
    transfer_duration: float
    semi_major_axis: float
    departure_velocity: np.ndarray
    delta_v: float
    delta_v_vector: np.ndarray = field(default=None, repr=False)
    departure_position: np.ndarray = field(default=None, repr=False)
    arrival_position: np.ndarray = field(default=None, repr=False)
    transfer_angle: float = float('nan')

    @property
    def arrival_time(self) -> float:
        return self.departure_time + self.transfer_duration

    def elapsed_since(self, start_time: float) -> float:
        """Total time from start_time until arrival [s]."""
        return self.departure_time - start_time + self.transfer_duration


@dataclass(frozen=True)
class SearchResult:
    candidate: TransferCandidate
    objective: SearchType
    cells_evaluated: int
    feasible_cells: int


class TrajectorySearch:
    """
    Nested scan over trial departure times and transfer durations, solving Lambert's
    problem in every cell and keeping the winner under the configured objective.
    """
    def __init__(self, provider: StateProvider, site: SurfaceSite, config: SearchConfiguration,
                 on_cell: Optional[Callable[[int, int], None]] = None, verbose: bool = False):
        """
        Args:
            provider (StateProvider): Source of predicted vehicle and site states.
            site (SurfaceSite): Landing target.
            config (SearchConfiguration): Search parameters.
            on_cell (callable): Called as on_cell(departure_index, duration_index) after each
                cell is evaluated. The host can use it to run its own frame stepping, or
                raise to abandon the search.
            verbose (bool): If True, prints progress updates.
        """
        if not isinstance(config, SearchConfiguration):
            raise InvalidConfigurationError(f"Expected a SearchConfiguration, got {type(config).__name__}")
        self.provider = provider
        self.site = site
        self.config = config
        self.on_cell = on_cell
        self.verbose = verbose

    def search_period(self, now: float) -> float:
        """Span of the grid axes: configured override or the vehicle's current orbital period [s]."""
        if self.config.search_period is not None:
            return self.config.search_period
        state = self.provider.predict_vehicle_state(now)
        return orbit_shape(state.position, state.velocity, self.provider.gravitational_parameter()).period

    def grid(self, now: float = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Trial departure times and transfer durations.

        Returns:
            tuple[np.ndarray, np.ndarray]: (departure_times, transfer_durations) [s].
        """
        if now is None:
            now = self.provider.current_time()
        n = self.config.step_count
        period = self.search_period(now)
        step = period / n

        first_departure = now + self.config.max_search_horizon
        departure_times = first_departure + step * np.arange(n)
        durations = step * np.arange(1, n + 1)
        return departure_times, durations

    def _evaluate(self, departure_time: float, duration: float, vehicle_state: StateVector) -> Optional[TransferCandidate]:
        mu = self.provider.gravitational_parameter()
        arrival_time = departure_time + duration

        r1 = np.array(vehicle_state.position)
        r2 = np.array(self.provider.predict_site_position(self.site, self.config.height_above_terrain, arrival_time),
                      dtype=float)

        r1_mag = np.linalg.norm(r1)
        r2_mag = np.linalg.norm(r2)
        chord = np.linalg.norm(r2 - r1)
        angle = angle_between_positions(r1, r2, vehicle_state.angular_momentum)

        if not LambertSolver.is_feasible(duration, r1_mag, r2_mag, chord, mu, angle):
            return None

        a = LambertSolver.solve_semi_major_axis(duration, r1_mag, r2_mag, chord, mu, angle)
        v_dep = LambertSolver.departure_velocity(r1, r2, a, mu, angle)
        dv_vec = v_dep - vehicle_state.velocity

        return TransferCandidate(
            departure_time=departure_time,
            transfer_duration=duration,
            semi_major_axis=a,
            departure_velocity=v_dep,
            delta_v=float(np.linalg.norm(dv_vec)),
            delta_v_vector=dv_vec,
            departure_position=r1,
            arrival_position=r2,
            transfer_angle=angle,
        )

    def solve_cell(self, departure_time: float, duration: float, vehicle_state: StateVector = None) -> TransferCandidate:
        """
        Solves a single (departure time, duration) cell.

        Args:
            departure_time (float): Departure time [s].
            duration (float): Transfer duration [s].
            vehicle_state (StateVector): Vehicle state at departure_time. Predicted when omitted.

        Returns:
            TransferCandidate: The solved transfer.

        Raises:
            InfeasibleTransferError: If duration is outside the feasible window for this geometry.
        """
        if vehicle_state is None:
            vehicle_state = self.provider.predict_vehicle_state(departure_time)
        candidate = self._evaluate(departure_time, duration, vehicle_state)
        if candidate is None:
            raise InfeasibleTransferError(
                f"No elliptical short-way transfer departing at {departure_time:.3f} s "
                f"with duration {duration:.3f} s")
        return candidate

    def scan(self, now: float = None) -> Iterator[Tuple[int, int, Optional[TransferCandidate]]]:
        """
        Walks the grid in departure-major, duration-minor order.

        Yields:
            tuple: (departure_index, duration_index, candidate or None when infeasible).
        """
        departure_times, durations = self.grid(now)

        for i, t_dep in enumerate(departure_times):
            # Sampled once per departure time, shared by every duration in the row
            vehicle_state = self.provider.predict_vehicle_state(float(t_dep))

            for j, dt in enumerate(durations):
                candidate = self._evaluate(float(t_dep), float(dt), vehicle_state)
                if self.on_cell is not None:
                    self.on_cell(i, j)
                yield i, j, candidate

    def search(self, now: float = None) -> SearchResult:
        """
        Runs the full search and returns the winning transfer.

        Args:
            now (float): Time the search starts from. Defaults to the provider's current time.

        Returns:
            SearchResult: Best candidate and scan statistics.

        Raises:
            NoFeasibleTransferError: If no cell was accepted.
        """
        if now is None:
            now = self.provider.current_time()
        objective = self.config.objective
        first_departure = now + self.config.max_search_horizon

        costs = {
            SearchType.MIN_DELTA_V: lambda c: c.delta_v,
            SearchType.MIN_TRANSFER_TIME: lambda c: c.elapsed_since(first_departure),
            SearchType.FIRST_FEASIBLE: None,
        }
        if objective not in costs:
            raise InvalidConfigurationError(f"Unrecognized search objective: {objective!r}")
        cost = costs[objective]

        n = self.config.step_count
        if self.verbose:
            print(f"Transfer Search ({objective.name}): Checking {n * n} cells...")

        best = None
        best_cost = np.inf
        evaluated = 0
        feasible = 0

        for i, j, candidate in self.scan(now):
            evaluated += 1
            if candidate is None:
                continue
            feasible += 1

            if objective == SearchType.FIRST_FEASIBLE:
                best = candidate
                break

            c = cost(candidate)
            if c < best_cost:
                best_cost = c
                best = candidate
                if self.verbose:
                    print(f"  New Best: Cost={c:.4e} | Depart={candidate.departure_time:.1f} s, "
                          f"TOF={candidate.transfer_duration:.1f} s, dV={candidate.delta_v:.4f} km/s")

        if best is None:
            raise NoFeasibleTransferError(
                f"No feasible transfer in {evaluated} cells of the search window", cells_evaluated=evaluated)

        if self.verbose:
            print(f"Transfer Search Complete. dV={best.delta_v:.4f} km/s, arrival at {best.arrival_time:.1f} s")

        return SearchResult(candidate=best, objective=objective, cells_evaluated=evaluated, feasible_cells=feasible)
