"""
Mission Analysis Package
Contains tools for descent transfer planning, including:
- Departure time / transfer duration search
- Re-solved braking guidance
- Delta-v map generation
"""
