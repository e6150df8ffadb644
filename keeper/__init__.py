"""
Harvest keeper: engine, accounting and conversion for a stability-pool
yield strategy.
"""

__version__ = "0.1.0"
