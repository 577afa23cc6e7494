import numpy as np

from descent_planner.dynamics.geometry import Z_AXIS, angle_between_positions


class InfeasibleTransferError(RuntimeError):
    """Requested transfer duration lies outside the elliptical short-way window."""
    pass


class LambertSolver:
    """
    Lambert solver based on the Lagrange form of Lambert's equation.
    Given two position vectors and a time of flight it finds the semi-major axis of
    the connecting ellipse by bisection, then the departure velocity in closed form.

    Only single-revolution elliptical transfers on the fast branch are covered:
    durations strictly between the parabolic minimum and the time at the
    minimum-energy semi-major axis.
    """

    @staticmethod
    def semi_perimeter(r1: float, r2: float, chord: float) -> float:
        return (r1 + r2 + chord) / 2.0

    @staticmethod
    def minimum_energy_semi_major_axis(r1: float, r2: float, chord: float) -> float:
        """Semi-major axis of the minimum-energy transfer, s/2 [km]."""
        return LambertSolver.semi_perimeter(r1, r2, chord) / 2.0

    @staticmethod
    def lagrange_angles(r1: float, r2: float, chord: float, a: float, transfer_angle: float) -> tuple[float, float]:
        """
        Lagrange's auxiliary angles alpha and beta [rad].
        Beta is negated for transfer angles above 180 degrees.
        """
        s = LambertSolver.semi_perimeter(r1, r2, chord)
        alpha = 2.0 * np.arcsin(np.sqrt(np.clip(s / (2.0 * a), 0.0, 1.0)))
        beta = 2.0 * np.arcsin(np.sqrt(np.clip((s - chord) / (2.0 * a), 0.0, 1.0)))
        if transfer_angle > 180.0:
            beta = -beta
        return alpha, beta

    @staticmethod
    def transfer_time(r1: float, r2: float, chord: float, a: float, mu: float, transfer_angle: float) -> float:
        """
        Time of flight along the ellipse of semi-major axis a joining the two radii.

        Args:
            r1 (float): Departure radius [km].
            r2 (float): Arrival radius [km].
            chord (float): Distance between the two positions [km].
            a (float): Transfer semi-major axis [km], a >= s/2.
            mu (float): Gravitational parameter [km^3/s^2].
            transfer_angle (float): Angle swept from departure to arrival [deg].

        Returns:
            float: Time of flight [s].
        """
        alpha, beta = LambertSolver.lagrange_angles(r1, r2, chord, a, transfer_angle)
        return np.sqrt(a**3 / mu) * (alpha - beta - (np.sin(alpha) - np.sin(beta)))

    @staticmethod
    def parabolic_minimum_time(r1: float, r2: float, chord: float, mu: float, transfer_angle: float) -> float:
        """
        Parabolic time of flight, the infimum of elliptical transfer times (a -> infinity) [s].
        """
        s = LambertSolver.semi_perimeter(r1, r2, chord)
        sign = -1.0 if transfer_angle > 180.0 else 1.0
        return (np.sqrt(2.0) / 3.0) * np.sqrt(s**3 / mu) * (1.0 - sign * ((s - chord) / s)**1.5)

    @staticmethod
    def maximum_time(r1: float, r2: float, chord: float, a_min: float, mu: float, transfer_angle: float) -> float:
        """Time of flight at the minimum-energy semi-major axis, the upper end of the window [s]."""
        return LambertSolver.transfer_time(r1, r2, chord, a_min, mu, transfer_angle)

    @staticmethod
    def feasible_window(r1: float, r2: float, chord: float, mu: float, transfer_angle: float) -> tuple[float, float]:
        """
        Open interval of transfer durations the solver can handle.

        Returns:
            tuple[float, float]: (t_parabolic, t_max) [s].
        """
        a_min = LambertSolver.minimum_energy_semi_major_axis(r1, r2, chord)
        t_min = LambertSolver.parabolic_minimum_time(r1, r2, chord, mu, transfer_angle)
        t_max = LambertSolver.maximum_time(r1, r2, chord, a_min, mu, transfer_angle)
        return t_min, t_max

    @staticmethod
    def is_degenerate(r1: float, r2: float, chord: float) -> bool:
        """True for 180 degree (or zero-length) geometry, where the transfer plane is undefined."""
        s = LambertSolver.semi_perimeter(r1, r2, chord)
        return chord == 0 or (s - chord) <= 1e-12 * s

    @staticmethod
    def is_feasible(dt: float, r1: float, r2: float, chord: float, mu: float, transfer_angle: float) -> bool:
        if LambertSolver.is_degenerate(r1, r2, chord):
            return False
        t_min, t_max = LambertSolver.feasible_window(r1, r2, chord, mu, transfer_angle)
        return t_min < dt < t_max

    @staticmethod
    def solve_semi_major_axis(dt: float, r1: float, r2: float, chord: float, mu: float, transfer_angle: float,
                              tolerance: float = 1e-3, max_iter: int = 200) -> float:
        """
        Finds the transfer semi-major axis whose time of flight matches dt, by bisection.

        Transfer time decreases monotonically as a grows above s/2, so the bracket
        [s/2, 2s] is widened by doubling its upper end until it encloses dt.

        Args:
            dt (float): Desired time of flight [s].
            r1 (float): Departure radius [km].
            r2 (float): Arrival radius [km].
            chord (float): Chord length [km].
            mu (float): Gravitational parameter [km^3/s^2].
            transfer_angle (float): Transfer angle [deg].
            tolerance (float): Relative time-of-flight tolerance (0.1% by default).
            max_iter (int): Maximum number of bisection steps.

        Returns:
            float: Semi-major axis [km].

        Raises:
            InfeasibleTransferError: If dt lies outside the feasible window or the
                bisection does not converge.
        """
        t_min, t_max = LambertSolver.feasible_window(r1, r2, chord, mu, transfer_angle)
        if not (t_min < dt < t_max):
            raise InfeasibleTransferError(
                f"Transfer duration {dt:.3f} s outside feasible window ({t_min:.3f}, {t_max:.3f}) s")

        s = LambertSolver.semi_perimeter(r1, r2, chord)
        a_low = s / 2.0
        a_high = 2.0 * s

        doublings = 0
        while LambertSolver.transfer_time(r1, r2, chord, a_high, mu, transfer_angle) >= dt:
            a_high *= 2.0
            doublings += 1
            if doublings > max_iter:
                raise InfeasibleTransferError(f"Could not bracket semi-major axis for duration {dt:.3f} s")

        for _ in range(max_iter):
            a_mid = (a_low + a_high) / 2.0
            t_mid = LambertSolver.transfer_time(r1, r2, chord, a_mid, mu, transfer_angle)

            if abs(dt - t_mid) <= tolerance * dt:
                return a_mid

            if t_mid > dt:
                a_low = a_mid
            else:
                a_high = a_mid

        raise InfeasibleTransferError(f"Semi-major axis bisection did not converge for duration {dt:.3f} s")

    @staticmethod
    def departure_velocity(r1: np.ndarray, r2: np.ndarray, a: float, mu: float, transfer_angle: float = None) -> np.ndarray:
        """
        Velocity at r1 that places the vehicle on the transfer ellipse of semi-major axis a.

        Args:
            r1 (np.ndarray): Departure position vector [km].
            r2 (np.ndarray): Arrival position vector [km].
            a (float): Transfer semi-major axis [km].
            mu (float): Gravitational parameter [km^3/s^2].
            transfer_angle (float): Transfer angle [deg]. Measured about +Z when omitted.

        Returns:
            np.ndarray: Departure velocity [km/s].
        """
        r1 = np.asarray(r1, dtype=float)
        r2 = np.asarray(r2, dtype=float)
        if transfer_angle is None:
            transfer_angle = angle_between_positions(r1, r2)

        r1_mag = np.linalg.norm(r1)
        r2_mag = np.linalg.norm(r2)
        chord_vec = r2 - r1
        chord = np.linalg.norm(chord_vec)
        if LambertSolver.is_degenerate(r1_mag, r2_mag, chord):
            raise InfeasibleTransferError("Limit case (180 degree transfer) has no unique transfer plane.")

        alpha, beta = LambertSolver.lagrange_angles(r1_mag, r2_mag, chord, a, transfer_angle)

        k = np.sqrt(mu / (4.0 * a))
        A = k / np.tan(alpha / 2.0)
        B = k / np.tan(beta / 2.0)

        u_c = chord_vec / chord
        u_1 = r1 / r1_mag
        return (B + A) * u_c + (B - A) * u_1

    @staticmethod
    def solve(r1: np.ndarray, r2: np.ndarray, dt: float, mu: float, reference_axis: np.ndarray = None,
              tolerance: float = 1e-3) -> tuple[np.ndarray, float, float]:
        """
        Solves Lambert's problem for the transfer from r1 to r2 in time dt.

        Args:
            r1 (np.ndarray): Departure position vector [km].
            r2 (np.ndarray): Arrival position vector [km].
            dt (float): Time of flight [s].
            mu (float): Gravitational parameter [km^3/s^2].
            reference_axis (np.ndarray): Axis the transfer angle is measured about.
                Defaults to +Z; pass the vehicle's angular momentum for prograde transfers.
            tolerance (float): Relative time-of-flight tolerance for the bisection.

        Returns:
            tuple[np.ndarray, float, float]: (v1, a, transfer_angle) - departure velocity [km/s],
            semi-major axis [km], transfer angle [deg].

        Raises:
            InfeasibleTransferError: If dt is outside the feasible window.
        """
        r1 = np.asarray(r1, dtype=float)
        r2 = np.asarray(r2, dtype=float)
        if reference_axis is None:
            reference_axis = Z_AXIS

        angle = angle_between_positions(r1, r2, reference_axis)
        r1_mag = np.linalg.norm(r1)
        r2_mag = np.linalg.norm(r2)
        chord = np.linalg.norm(r2 - r1)

        a = LambertSolver.solve_semi_major_axis(dt, r1_mag, r2_mag, chord, mu, angle, tolerance=tolerance)
        v1 = LambertSolver.departure_velocity(r1, r2, a, mu, angle)
        return v1, a, angle
