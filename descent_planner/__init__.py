"""
Descent Transfer Planner
Ballistic transfer planning between an orbiting vehicle and a surface site:
- dynamics: anomaly conversions, orbit geometry, two-body propagation, state providers
- trajectory: Lambert solver and burn sizing
- mission: transfer search, braking guidance and delta-v maps
"""

__version__ = '0.1.0'
