"""
Auto Turbo - switches the CPU frequency-scaling policy between a power-saving
profile and a performance profile based on observed CPU usage.
"""

__version__ = "0.3.0"
