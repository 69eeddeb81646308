"""
slotguard - appointment availability and booking-consistency engine.
"""

__version__ = "0.1.0"
