"""
devicelink - connectivity, discovery and control for local network devices.
"""

__version__ = "0.1.0"
