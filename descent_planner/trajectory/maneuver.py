from dataclasses import dataclass

import numpy as np

G0 = 9.80665  # standard gravity [m/s^2]


def estimate_burn_duration(delta_v: float, initial_mass: float, thrust: float, isp: float, g0: float = G0) -> float:
    """
    Estimates how long a constant-thrust burn takes to deliver delta_v, using the
    ideal rocket equation. No throttle ramp and no staging are modelled.

    Args:
        delta_v (float): Required velocity change [m/s].
        initial_mass (float): Vehicle mass at ignition [kg].
        thrust (float): Available thrust [N].
        isp (float): Specific impulse [s].
        g0 (float): Standard gravity used to define isp [m/s^2].

    Returns:
        float: Burn duration [s].

    Raises:
        ValueError: On negative delta_v or non-positive mass, thrust or isp.
    """
    if delta_v < 0:
        raise ValueError(f"delta_v must be non-negative, got {delta_v}")
    if initial_mass <= 0 or thrust <= 0 or isp <= 0:
        raise ValueError("initial_mass, thrust and isp must all be positive.")

    v_e = isp * g0
    final_mass = initial_mass * np.exp(-delta_v / v_e)
    fuel_mass = initial_mass - final_mass
    mass_flow = thrust / v_e
    return fuel_mass / mass_flow


@dataclass(frozen=True)
class PropulsionModel:
    """
    Vehicle data needed to size a burn.

    Attributes:
        mass (float): Current vehicle mass [kg].
        thrust (float): Available thrust [N].
        isp (float): Specific impulse of the active stage [s].
    """
    mass: float
    thrust: float
    isp: float

    def burn_duration(self, delta_v_km_s: float) -> float:
        """Burn duration for a delta-v given in km/s [s]."""
        return estimate_burn_duration(delta_v_km_s * 1000.0, self.mass, self.thrust, self.isp)


class ImpulsiveManeuver:
    """
    Represents an impulsive delta-v maneuver, with the finite burn time needed to execute it.
    """
    def __init__(self, epoch: float, delta_v: np.ndarray, burn_duration: float = 0.0):
        """
        Args:
            epoch (float): Time the impulse is nominally applied [s].
            delta_v (np.ndarray): Delta-V vector [km/s] (3,).
            burn_duration (float): Estimated finite burn length [s].
        """
        self.epoch = epoch
        self.delta_v = np.array(delta_v, dtype=float)
        self.burn_duration = burn_duration

    @classmethod
    def from_candidate(cls, candidate, propulsion: PropulsionModel = None) -> "ImpulsiveManeuver":
        """
        Builds the departure maneuver of a transfer candidate.

        Args:
            candidate (TransferCandidate): Selected transfer.
            propulsion (PropulsionModel): If given, the burn duration is estimated from it.
        """
        duration = 0.0
        if propulsion is not None:
            duration = propulsion.burn_duration(candidate.delta_v)
        return cls(candidate.departure_time, candidate.delta_v_vector, duration)

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.delta_v))

    @property
    def direction(self) -> np.ndarray:
        mag = self.magnitude
        if mag == 0:
            return np.zeros(3)
        return self.delta_v / mag

    @property
    def burn_start_time(self) -> float:
        """Ignition time for a burn centred on the impulse epoch [s]."""
        return self.epoch - self.burn_duration / 2.0

    def apply_to_state(self, state: np.ndarray, epoch: float) -> np.ndarray:
        """
        Applies the maneuver to a state vector if the time matches.

        Args:
            state (np.ndarray): State vector [rx, ry, rz, vx, vy, vz].
            epoch (float): Current time.

        Returns:
            np.ndarray: Updated state vector.
        """
        if abs(epoch - self.epoch) < 1e-6:
            new_state = np.array(state, dtype=float)
            new_state[3:6] += self.delta_v
            return new_state
        return state
