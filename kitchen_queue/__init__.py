"""
                Kitchen Queue Scheduler

Backend for a small restaurant point-of-sale: turns open bills into a
single prioritized, per-station kitchen work queue and tracks every
cooked unit through its start/complete/undo lifecycle.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
