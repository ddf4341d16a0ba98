"""
Questboard progression and rewards engine.

Converts completed marketplace tasks into experience, trust and real-world
impact awards, derives levels from cumulative experience and tracks milestone
completion for each user.
"""

__version__ = "1.0.0"
