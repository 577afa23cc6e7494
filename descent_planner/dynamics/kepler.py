import numpy as np

from descent_planner.dynamics.anomaly import TrueAnomaly, mean_to_true, true_to_mean
from descent_planner.dynamics.geometry import (
    angle_between_positions,
    eccentricity_vector,
    orbit_radius,
    orbit_shape,
    specific_angular_momentum,
)


class KeplerOrbit:
    """
    Unperturbed two-body orbit, propagated analytically through the mean anomaly.

    The orbit is fixed by one sampled state (r0, v0) at epoch t0. Positions at
    any other time are exact for unpowered coasting around a point mass.
    Only elliptical orbits are supported.
    """
    def __init__(self, r0: np.ndarray, v0: np.ndarray, mu: float, epoch: float = 0.0):
        """
        Args:
            r0 (np.ndarray): Position at epoch [km].
            v0 (np.ndarray): Velocity at epoch [km/s].
            mu (float): Gravitational parameter [km^3/s^2].
            epoch (float): Time at which (r0, v0) is valid [s].

        Raises:
            ValueError: If the state is not on a bound (elliptical) orbit.
        """
        self.r0 = np.array(r0, dtype=float)
        self.v0 = np.array(v0, dtype=float)
        self.mu = mu
        self.epoch = epoch

        self.shape = orbit_shape(self.r0, self.v0, mu)
        h_vec = specific_angular_momentum(self.r0, self.v0)
        h_mag = np.linalg.norm(h_vec)
        if h_mag < 1e-12:
            raise ValueError("Rectilinear trajectory (r parallel to v) has no orbital plane.")
        self.h_hat = h_vec / h_mag

        # Perifocal basis: P toward periapsis, Q 90 degrees ahead in the direction of motion
        e_vec = eccentricity_vector(self.r0, self.v0, mu)
        if self.shape.eccentricity < 1e-9:
            # Circular: anomalies are measured from the epoch position
            self.p_hat = self.r0 / np.linalg.norm(self.r0)
        else:
            self.p_hat = e_vec / np.linalg.norm(e_vec)
        self.q_hat = np.cross(self.h_hat, self.p_hat)

        nu0 = angle_between_positions(self.p_hat, self.r0, self.h_hat)
        self.mean_anomaly_epoch = true_to_mean(nu0, self.shape.eccentricity)

    @property
    def eccentricity(self) -> float:
        return self.shape.eccentricity

    @property
    def semi_major_axis(self) -> float:
        return self.shape.semi_major_axis

    @property
    def period(self) -> float:
        return self.shape.period

    @property
    def semi_latus_rectum(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity**2)

    def true_anomaly_at(self, time: float) -> TrueAnomaly:
        """True anomaly at the given time [deg]."""
        dM = 360.0 * (time - self.epoch) / self.period
        return mean_to_true(float(self.mean_anomaly_epoch) + dM, self.eccentricity)

    def state_at(self, time: float) -> tuple[np.ndarray, np.ndarray]:
        """
        Position and velocity at an arbitrary past or future time.

        Args:
            time (float): Query time [s].

        Returns:
            tuple[np.ndarray, np.ndarray]: (r, v) [km], [km/s].
        """
        nu = self.true_anomaly_at(time)
        e = self.eccentricity
        r_mag = orbit_radius(nu, e, self.semi_major_axis)

        cos_nu = np.cos(nu.radians)
        sin_nu = np.sin(nu.radians)

        r = r_mag * (cos_nu * self.p_hat + sin_nu * self.q_hat)
        v = np.sqrt(self.mu / self.semi_latus_rectum) * (-sin_nu * self.p_hat + (e + cos_nu) * self.q_hat)
        return r, v
