from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from descent_planner.dynamics.kepler import KeplerOrbit


def _frozen_vector(values) -> np.ndarray:
    vec = np.array(values, dtype=float)
    if vec.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {vec.shape}")
    vec.setflags(write=False)
    return vec


@dataclass(frozen=True, eq=False)
class StateVector:
    """
    Position and velocity relative to the central body, in its non-rotating frame.
    Immutable once sampled.

    Attributes:
        position (np.ndarray): [km] (3,).
        velocity (np.ndarray): [km/s] (3,).
    """
    position: np.ndarray
    velocity: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 'position', _frozen_vector(self.position))
        object.__setattr__(self, 'velocity', _frozen_vector(self.velocity))

    @property
    def angular_momentum(self) -> np.ndarray:
        return np.cross(self.position, self.velocity)


@dataclass(frozen=True)
class SurfaceSite:
    """
    A fixed geographic site on the central body.

    Attributes:
        latitude (float): Geocentric latitude [deg].
        longitude (float): Inertial longitude of the site at `epoch` [deg],
            measured about +Z from the frame's +X axis.
        terrain_height (float): Terrain radius of the site [km] (body radius plus elevation).
        epoch (float): Time at which `longitude` is valid [s].
    """
    latitude: float
    longitude: float
    terrain_height: float
    epoch: float = 0.0

    def longitude_at(self, time: float, rotation_period: float) -> float:
        """Inertial longitude after the body has rotated for (time - epoch) seconds [deg]."""
        return (self.longitude + (time - self.epoch) / rotation_period * 360.0) % 360.0

    def position_at(self, time: float, rotation_period: float, height_above_terrain: float = 0.0) -> np.ndarray:
        """
        Inertial position of the site's projection at a height above the terrain [km].
        The body rotates prograde about +Z.
        """
        lat = np.radians(self.latitude)
        lon = np.radians(self.longitude_at(time, rotation_period))
        radius = self.terrain_height + height_above_terrain
        return radius * np.array([np.cos(lat) * np.cos(lon),
                                  np.cos(lat) * np.sin(lon),
                                  np.sin(lat)])


class StateProvider(ABC):
    """
    Abstract source of predicted vehicle and target state.

    The planner only ever asks for states at explicit times. Implementations
    wrap whatever the host offers (a flight simulator, an ephemeris service or
    the analytical KeplerEphemeris below).
    """
    @abstractmethod
    def current_time(self) -> float:
        """Current time [s]."""
        pass

    @abstractmethod
    def predict_vehicle_state(self, time: float) -> StateVector:
        """
        Vehicle position and velocity at an arbitrary past or future time,
        assuming unpowered coasting.
        """
        pass

    @abstractmethod
    def predict_site_position(self, site: SurfaceSite, height_above_terrain: float, time: float) -> np.ndarray:
        """Position of the site's projection at `height_above_terrain` at `time` [km]."""
        pass

    @abstractmethod
    def gravitational_parameter(self) -> float:
        """GM of the central body [km^3/s^2]."""
        pass

    @abstractmethod
    def body_rotation_period(self) -> float:
        """Sidereal rotation period of the central body [s]."""
        pass


class KeplerEphemeris(StateProvider):
    """
    Reference state provider: vehicle on a two-body orbit around a uniformly
    rotating central body.
    """
    def __init__(self, vehicle_state: StateVector, mu: float, rotation_period: float, epoch: float = 0.0):
        """
        Args:
            vehicle_state (StateVector): Vehicle state sampled at `epoch`.
            mu (float): Gravitational parameter [km^3/s^2].
            rotation_period (float): Sidereal rotation period of the body [s].
            epoch (float): Time of the vehicle sample, also the provider's "now" [s].
        """
        self.mu = mu
        self.rotation_period = rotation_period
        self.epoch = epoch
        self.now = epoch
        self.orbit = KeplerOrbit(vehicle_state.position, vehicle_state.velocity, mu, epoch)

    def current_time(self) -> float:
        return self.now

    def advance(self, dt: float):
        """Moves the provider's clock forward by dt seconds."""
        self.now += dt

    def predict_vehicle_state(self, time: float) -> StateVector:
        r, v = self.orbit.state_at(time)
        return StateVector(r, v)

    def predict_site_position(self, site: SurfaceSite, height_above_terrain: float, time: float) -> np.ndarray:
        return site.position_at(time, self.rotation_period, height_above_terrain)

    def gravitational_parameter(self) -> float:
        return self.mu

    def body_rotation_period(self) -> float:
        return self.rotation_period
