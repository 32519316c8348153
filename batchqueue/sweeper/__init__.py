"""
Sweeper module.
Contains the periodic requeue of expired pending jobs.
"""

from batchqueue.sweeper.main import Sweeper, run

__all__ = ["Sweeper", "run"]
