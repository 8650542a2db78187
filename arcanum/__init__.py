"""
Arcanum GM Toolkit - environment simulation.

An in-fiction clock, regional weather with mechanical effects and narrative
environment events for running tabletop sessions.
"""

__version__ = "0.1.0"
