"""Module with fast, Numba-accelerated math routines.

This includes multiple submodules:
- `distance.py` includes distances between hit collections (closest hit,
  close-hit fractions, cone fractions, contact layers)
- `linalg.py` includes straight-line fits to point clouds
- `helix.py` includes the charged-particle helix model
"""

# Expose submodules
from . import distance, linalg
from .helix import Helix
