"""Construct a reconstruction algorithm class from its name."""

from calofrag.utils.factory import instantiate, module_dict

from . import looping, muon
from .fragment import removal

# Build a dictionary of available reconstruction algorithms
ALGO_DICT = {}
for module in [removal, looping, muon]:
    ALGO_DICT.update(**module_dict(module))


def algorithm_factory(name, cfg, geometry=None):
    """Instantiates a reconstruction algorithm from a configuration dictionary.

    Parameters
    ----------
    name : str
        Name of the reconstruction algorithm
    cfg : dict
        Reconstruction algorithm configuration
    geometry : Geometry, optional
        Calorimeter geometry, provided to the algorithms which need it

    Returns
    -------
    object
         Initialized reconstruction algorithm
    """
    # Provide the name to the configuration
    cfg = dict(cfg or {})
    cfg["name"] = name

    # Instantiate the reconstruction algorithm
    if name in ALGO_DICT and ALGO_DICT[name].need_geometry:
        assert geometry is not None, (
            f"The `{name}` algorithm needs a geometry, none was provided."
        )
        return instantiate(ALGO_DICT, cfg, geometry=geometry)
    else:
        return instantiate(ALGO_DICT, cfg)
