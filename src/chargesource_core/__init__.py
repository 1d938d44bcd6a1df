"""
ChargeSource Core Package
Quote computation and product comparison for EV-charging installations
"""

__version__ = "0.1.0"
__author__ = "ChargeSource Development Team"

from . import engine

__all__ = ["engine"]
