"""Module which contains all the data structures used in the reconstruction.

It contains:
- :class:`CaloHit`, a single calorimeter energy deposition
- :class:`Track`, a charged-particle track with its helix at the calorimeter
- :class:`Cluster`, a group of hits with derived shape quantities
- :class:`ParticleFlowObject`, a particle built from tracks and clusters
- :class:`Event`, the container shared by all algorithms
"""

from .hit import HitType, CaloHit
from .track import Track
from .cluster import FitResult, Cluster
from .pfo import ParticleFlowObject
from .event import Event
