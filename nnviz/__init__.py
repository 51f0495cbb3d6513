"""
nnviz - interactive editor and visualizer for small feed-forward weighted networks.
"""

__version__ = "0.3.0"
