"""
Journey analytics: clickstream events turned into per-session flows.
"""

__version__ = "0.1.0"
