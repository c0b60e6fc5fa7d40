"""
Grovyn Core: deterministic retail analytics pipeline
"""

__version__ = "1.0.0"
