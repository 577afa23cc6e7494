from typing import Callable, Optional

import numpy as np

from descent_planner.mission.transfer_search import TransferCandidate, TrajectorySearch


class BrakingGuidance:
    """
    Re-solved Lambert guidance for the braking phase.

    Every control step solves a single cell: departure at the current instant and a
    transfer duration carried over from the previous step, reduced by the time that
    has elapsed since. The arrival epoch therefore stays fixed while the aim point
    follows the rotating target, and the returned delta-v vector is the correction
    the executor should burn toward.
    """
    def __init__(self, search: TrajectorySearch, remaining_duration: float, start_time: float,
                 cutoff: float = 0.0, on_step: Optional[Callable[[TransferCandidate], None]] = None,
                 verbose: bool = False):
        """
        Args:
            search (TrajectorySearch): Search whose provider, site and aim height are used.
            remaining_duration (float): Nominal transfer time remaining at start_time [s].
            start_time (float): Time the remaining duration refers to [s].
            cutoff (float): Remaining duration at or below which guidance is finished [s].
            on_step (callable): Called with the candidate after every step.
            verbose (bool): If True, prints each step.
        """
        if remaining_duration <= 0:
            raise ValueError(f"remaining_duration must be positive, got {remaining_duration}")
        self.search = search
        self.duration_estimate = remaining_duration
        self.last_time = start_time
        self.cutoff = cutoff
        self.on_step = on_step
        self.verbose = verbose
        self.steps = 0

    @classmethod
    def from_candidate(cls, search: TrajectorySearch, candidate: TransferCandidate, **kwargs) -> "BrakingGuidance":
        """Starts guidance on the transfer picked by a previous search."""
        return cls(search, candidate.transfer_duration, candidate.departure_time, **kwargs)

    @property
    def arrival_time(self) -> float:
        return self.last_time + self.duration_estimate

    @property
    def finished(self) -> bool:
        return self.duration_estimate <= self.cutoff

    def step(self, now: float = None) -> Optional[TransferCandidate]:
        """
        Solves the guidance problem at the current instant.

        Args:
            now (float): Current time [s]. Defaults to the provider's current time.

        Returns:
            TransferCandidate: Transfer departing now and arriving at the fixed arrival epoch,
            or None once the remaining duration has reached the cutoff.

        Raises:
            InfeasibleTransferError: If the remaining duration has left the feasible window.
        """
        if now is None:
            now = self.search.provider.current_time()

        remaining = self.duration_estimate - (now - self.last_time)
        if remaining <= self.cutoff:
            self.duration_estimate = remaining
            self.last_time = now
            return None

        vehicle_state = self.search.provider.predict_vehicle_state(now)
        candidate = self.search.solve_cell(now, remaining, vehicle_state)

        self.duration_estimate = remaining
        self.last_time = now
        self.steps += 1

        if self.verbose:
            print(f"Guidance step {self.steps}: TOF={remaining:.2f} s, "
                  f"dV={candidate.delta_v:.4f} km/s, a={candidate.semi_major_axis:.2f} km")

        if self.on_step is not None:
            self.on_step(candidate)
        return candidate

    def steering_direction(self, candidate: TransferCandidate) -> np.ndarray:
        """Unit vector along the correction burn; zero when no correction is needed."""
        mag = np.linalg.norm(candidate.delta_v_vector)
        if mag == 0:
            return np.zeros(3)
        return candidate.delta_v_vector / mag
