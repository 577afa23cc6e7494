"""
Two-Body Dynamics Package
Contains the orbital-mechanics primitives used by the planner:
- Conversions between true, eccentric and mean anomaly
- Orbit plane and shape vectors
- Analytical Kepler propagation and the state provider interface
"""
