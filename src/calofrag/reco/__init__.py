"""Reconstruction algorithms and the manager which chains them.

It contains:
- :class:`AlgorithmBase`, the base class of all algorithms
- :mod:`fragment`, the iterative fragment removal
- :mod:`looping`, the merging of looping track clusters
- :mod:`muon`, the reconstruction of muons from muon system clusters
"""

from .manager import AlgorithmManager
from .factories import algorithm_factory
