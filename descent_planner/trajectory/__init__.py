"""
Trajectory Package
Contains the Lambert boundary-value solver and impulsive maneuver sizing.
"""
