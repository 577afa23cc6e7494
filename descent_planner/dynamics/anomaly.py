import numpy as np
from scipy.optimize import newton


def _normalize_degrees(value: float) -> float:
    wrapped = float(value) % 360.0
    # float modulo can round a tiny negative input up to exactly 360
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped


class Anomaly(float):
    """
    Base class for orbital anomaly angles in degrees, normalized to [0, 360).
    Subclasses are distinct so a mean anomaly cannot be passed where a true
    anomaly is expected without going through a conversion.
    """
    def __new__(cls, value: float):
        return super().__new__(cls, _normalize_degrees(value))

    def __repr__(self):
        return f"{type(self).__name__}({float(self):.6f})"

    @property
    def radians(self) -> float:
        return np.radians(float(self))


class TrueAnomaly(Anomaly):
    pass


class EccentricAnomaly(Anomaly):
    pass


class MeanAnomaly(Anomaly):
    pass


def _check_elliptical(eccentricity: float):
    if eccentricity < 0.0 or eccentricity >= 1.0:
        raise ValueError(f"Eccentricity must be in [0, 1) for elliptical orbits, got {eccentricity}")


def true_to_eccentric(true_anomaly: float, eccentricity: float) -> EccentricAnomaly:
    """
    Converts true anomaly to eccentric anomaly.

    Args:
        true_anomaly (float): True anomaly [deg].
        eccentricity (float): Orbital eccentricity (0 <= e < 1).

    Returns:
        EccentricAnomaly: Eccentric anomaly [deg].
    """
    _check_elliptical(eccentricity)
    nu = TrueAnomaly(true_anomaly)

    # Half-angle form of cos(E) = (e + cos(nu)) / (1 + e*cos(nu)), keeps the quadrant
    half = nu.radians / 2.0
    E = 2.0 * np.arctan2(np.sqrt(1.0 - eccentricity) * np.sin(half), np.sqrt(1.0 + eccentricity) * np.cos(half))
    return EccentricAnomaly(np.degrees(E))


def eccentric_to_true(eccentric_anomaly: float, eccentricity: float) -> TrueAnomaly:
    """
    Converts eccentric anomaly to true anomaly (inverse of true_to_eccentric).
    """
    _check_elliptical(eccentricity)
    E = EccentricAnomaly(eccentric_anomaly)

    half = E.radians / 2.0
    nu = 2.0 * np.arctan2(np.sqrt(1.0 + eccentricity) * np.sin(half), np.sqrt(1.0 - eccentricity) * np.cos(half))
    return TrueAnomaly(np.degrees(nu))


def true_to_mean(true_anomaly: float, eccentricity: float) -> MeanAnomaly:
    """
    Converts true anomaly to mean anomaly through Kepler's equation M = E - e*sin(E).

    Args:
        true_anomaly (float): True anomaly [deg].
        eccentricity (float): Orbital eccentricity (0 <= e < 1).

    Returns:
        MeanAnomaly: Mean anomaly [deg].
    """
    E = true_to_eccentric(true_anomaly, eccentricity)
    M_rad = E.radians - eccentricity * np.sin(E.radians)
    return MeanAnomaly(np.degrees(M_rad))


def mean_to_eccentric(mean_anomaly: float, eccentricity: float, tol: float = 1e-12, max_iter: int = 50) -> EccentricAnomaly:
    """
    Solves Kepler's equation for the eccentric anomaly.

    Args:
        mean_anomaly (float): Mean anomaly [deg].
        eccentricity (float): Orbital eccentricity (0 <= e < 1).
        tol (float): Convergence tolerance on E [rad].
        max_iter (int): Maximum Newton iterations.

    Returns:
        EccentricAnomaly: Eccentric anomaly [deg].

    Raises:
        RuntimeError: If Newton's method fails to converge.
    """
    _check_elliptical(eccentricity)
    M = MeanAnomaly(mean_anomaly).radians

    def kepler(E):
        return E - eccentricity * np.sin(E) - M

    def kepler_prime(E):
        return 1.0 - eccentricity * np.cos(E)

    # Starting at pi for high eccentricity avoids the flat region near periapsis
    E0 = M if eccentricity < 0.8 else np.pi
    E = newton(kepler, E0, fprime=kepler_prime, tol=tol, maxiter=max_iter)
    return EccentricAnomaly(np.degrees(E))


def mean_to_true(mean_anomaly: float, eccentricity: float) -> TrueAnomaly:
    E = mean_to_eccentric(mean_anomaly, eccentricity)
    return eccentric_to_true(E, eccentricity)


def time_between(initial_true_anomaly: float, final_true_anomaly: float, eccentricity: float, period: float) -> float:
    """
    Time of flight between two true anomalies on the same orbit, moving forward
    (prograde) from the initial to the final position.

    Args:
        initial_true_anomaly (float): Starting true anomaly [deg].
        final_true_anomaly (float): Ending true anomaly [deg].
        eccentricity (float): Orbital eccentricity (0 <= e < 1).
        period (float): Orbital period [s].

    Returns:
        float: Elapsed time [s], in [0, period).
    """
    M0 = true_to_mean(initial_true_anomaly, eccentricity)
    M1 = true_to_mean(final_true_anomaly, eccentricity)

    dM = float(M1) - float(M0)
    if dM < 0.0:
        dM += 360.0
    return dM * period / 360.0
