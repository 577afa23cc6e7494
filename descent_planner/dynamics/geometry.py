from dataclasses import dataclass

import numpy as np

from descent_planner.dynamics.anomaly import TrueAnomaly

Z_AXIS = np.array([0.0, 0.0, 1.0])


@dataclass(frozen=True)
class OrbitShape:
    """
    Size and shape of an elliptical orbit.

    Attributes:
        eccentricity (float): Orbital eccentricity, 0 <= e < 1.
        semi_major_axis (float): Semi-major axis [km].
        period (float): Orbital period [s].
    """
    eccentricity: float
    semi_major_axis: float
    period: float

    def __post_init__(self):
        if self.eccentricity < 0.0 or self.eccentricity >= 1.0:
            raise ValueError(f"OrbitShape is elliptical only, got eccentricity {self.eccentricity}")

    @classmethod
    def from_semi_major_axis(cls, semi_major_axis: float, eccentricity: float, mu: float) -> "OrbitShape":
        period = 2 * np.pi * np.sqrt(semi_major_axis**3 / mu)
        return cls(eccentricity, semi_major_axis, period)


def specific_angular_momentum(r: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Specific angular momentum h = r x v, normal to the orbital plane [km^2/s]."""
    return np.cross(r, v)


def eccentricity_vector(r: np.ndarray, v: np.ndarray, mu: float) -> np.ndarray:
    """
    Eccentricity vector. Its magnitude is the orbital eccentricity and it
    points toward periapsis.

    Args:
        r (np.ndarray): Position vector [km].
        v (np.ndarray): Velocity vector [km/s].
        mu (float): Gravitational parameter [km^3/s^2].

    Returns:
        np.ndarray: Eccentricity vector (dimensionless).
    """
    r_mag = np.linalg.norm(r)
    v_mag = np.linalg.norm(v)
    return (v_mag**2 / mu - 1.0 / r_mag) * r - (np.dot(r, v) / mu) * v


def orbit_radius(true_anomaly: float, eccentricity: float, semi_major_axis: float) -> float:
    """Radius on a conic at the given true anomaly [deg]: a(1 - e^2) / (1 + e cos(nu))."""
    nu = np.radians(true_anomaly)
    return semi_major_axis * (1.0 - eccentricity**2) / (1.0 + eccentricity * np.cos(nu))


def angle_between_positions(r1: np.ndarray, r2: np.ndarray, reference_axis: np.ndarray = Z_AXIS) -> float:
    """
    Angle swept from r1 to r2, counter-clockwise about the reference axis.

    The unsigned angle between the vectors is reflected to
    360 - angle when (r1 x r2) points against the reference axis, so a
    prograde sweep below 180 degrees stays below 180.

    Args:
        r1 (np.ndarray): First position vector [km].
        r2 (np.ndarray): Second position vector [km].
        reference_axis (np.ndarray): "Up" axis of a right-handed frame. Pass the
            orbit's angular momentum vector to measure in the direction of motion.

    Returns:
        float: Angle in [0, 360) [deg].
    """
    r1_mag = np.linalg.norm(r1)
    r2_mag = np.linalg.norm(r2)
    if r1_mag == 0 or r2_mag == 0:
        raise ValueError("Cannot measure an angle to a zero-length position vector.")

    # atan2 form of arccos(r1.r2 / |r1||r2|), exact for parallel vectors
    cross_12 = np.cross(r1, r2)
    theta = np.degrees(np.arctan2(np.linalg.norm(cross_12), np.dot(r1, r2)))

    if np.dot(cross_12, reference_axis) < 0:
        theta = 360.0 - theta

    if theta >= 360.0:
        theta = 0.0
    return float(theta)


def relative_inclination(h1: np.ndarray, h2: np.ndarray) -> float:
    """Angle between two orbital planes given their angular momentum vectors [deg]."""
    cos_i = np.dot(h1, h2) / (np.linalg.norm(h1) * np.linalg.norm(h2))
    return float(np.degrees(np.arccos(np.clip(cos_i, -1.0, 1.0))))


def ascending_node_vector(h1: np.ndarray, h2: np.ndarray) -> np.ndarray:
    """Line of nodes between two orbital planes sharing the same center (h1 x h2)."""
    return np.cross(h1, h2)


def orbit_shape(r: np.ndarray, v: np.ndarray, mu: float) -> OrbitShape:
    """
    Eccentricity, semi-major axis and period of the orbit through (r, v).

    Raises:
        ValueError: If the orbit is parabolic or hyperbolic.
    """
    r_mag = np.linalg.norm(r)
    v_mag = np.linalg.norm(v)

    # Specific Energy
    energy = v_mag**2 / 2 - mu / r_mag
    if energy >= 0:
        raise ValueError(f"State is not on a bound orbit (specific energy {energy:.6g} >= 0)")

    a = -mu / (2 * energy)
    e = np.linalg.norm(eccentricity_vector(r, v, mu))
    return OrbitShape.from_semi_major_axis(a, float(e), mu)


def true_anomaly_of(r: np.ndarray, v: np.ndarray, mu: float) -> TrueAnomaly:
    """
    True anomaly of position r on the orbit through (r, v), measured from
    periapsis in the direction of motion. Circular orbits have no periapsis;
    0 is returned for them.
    """
    e_vec = eccentricity_vector(r, v, mu)
    e = np.linalg.norm(e_vec)
    if e < 1e-9:
        return TrueAnomaly(0.0)
    return TrueAnomaly(angle_between_positions(e_vec, r, specific_angular_momentum(r, v)))


def state_to_orbital_elements(r: np.ndarray, v: np.ndarray, mu: float) -> dict:
    """
    Converts Cartesian state (r, v) to Keplerian Orbital Elements.

    Args:
        r (np.ndarray): Position vector [km].
        v (np.ndarray): Velocity vector [km/s].
        mu (float): Gravitational parameter [km^3/s^2].

    Returns:
        dict: Keplerian elements (a, e, i_deg, raan_deg, arg_p_deg, nu_deg, period).
    """
    shape = orbit_shape(r, v, mu)
    h_vec = specific_angular_momentum(r, v)
    e_vec = eccentricity_vector(r, v, mu)

    # Inclination, measured against the equatorial plane (+Z normal)
    i_deg = relative_inclination(Z_AXIS, h_vec)

    # Node Vector (line of nodes)
    n_vec = ascending_node_vector(Z_AXIS, h_vec)
    n_mag = np.linalg.norm(n_vec)

    if n_mag < 1e-9:
        # Equatorial: node is undefined, measure from +X instead
        raan_deg = 0.0
        n_vec = np.array([1.0, 0.0, 0.0])
    else:
        raan_deg = angle_between_positions(np.array([1.0, 0.0, 0.0]), n_vec)

    if shape.eccentricity < 1e-9:
        arg_p_deg = 0.0
    else:
        arg_p_deg = angle_between_positions(n_vec, e_vec, h_vec)

    return {
        'a': shape.semi_major_axis,
        'e': shape.eccentricity,
        'i_deg': i_deg,
        'raan_deg': raan_deg,
        'arg_p_deg': arg_p_deg,
        'nu_deg': float(true_anomaly_of(r, v, mu)),
        'period': shape.period,
    }
