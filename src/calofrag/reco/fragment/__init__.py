"""Fragment removal algorithms.

It contains:
- :mod:`contact`, the features which describe a (daughter, parent) pair
- :mod:`evidence`, the total and required evidence for a merge
- :mod:`removal`, the iterative merging loop
"""

from .contact import *
from .evidence import *
from .removal import *
