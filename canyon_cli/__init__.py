"""
Canyon CLI - Command-line interface for the visit tracking engine.

Usage:
    canyon-cli replay tracks/morning_walk.csv
    canyon-cli stats
    canyon-cli reset-visits
    canyon-cli nearest 35.3139 -120.6527
"""

__version__ = "1.0.0"
