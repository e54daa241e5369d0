"""Iterative, evidence-based removal of calorimeter cluster fragments."""

from .driver import Driver
from .version import __version__
