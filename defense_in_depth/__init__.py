"""
Defense in Depth visualizer: reference data API and layer simulation engine
"""

__version__ = "1.0.0"
