"""Functions needed to build algorithm objects from configuration blocks.

A YAML block of the form

.. code-block:: yaml

    fragment_removal:
      min_daughter_calo_hits: 5
      contact_weight: 1.0

is turned into an instance of the class registered under the block name,
with every other key passed as a keyword argument.
"""

from copy import deepcopy

from .logger import logger

__all__ = ["module_dict", "instantiate"]


def module_dict(module):
    """Converts a module into a dictionary which maps names onto classes.

    Only the classes listed in the module `__all__` are considered. Each class
    is accessible through its class name, its `name` attribute and any of
    its `aliases`.

    Parameters
    ----------
    module : module
        Module from which to fetch the classes

    Returns
    -------
    dict
        Dictionary which maps acceptable class names to classes themselves
    """
    options = {}
    for cls_name in getattr(module, "__all__", dir(module)):
        # Skip private objects
        if cls_name.startswith("_"):
            continue

        # Only consider classes defined in the module of interest
        cls = getattr(module, cls_name)
        if getattr(cls, "__module__", "").startswith(module.__name__):
            options[cls_name] = cls
            if getattr(cls, "name", None):
                options[cls.name] = cls
            for alias in getattr(cls, "aliases", ()):
                options[alias] = cls

    return options


def instantiate(module_dict, cfg, **kwargs):
    """Instantiates a class based on a configuration dictionary.

    Parameters
    ----------
    module_dict : dict
        Dictionary which maps a class name onto an object class
    cfg : Union[str, dict]
        Configuration dictionary with a `name` key. If a string is provided,
        it is interpreted as a class name with no parameters.
    **kwargs : dict, optional
        Additional parameters to pass to the class constructor

    Returns
    -------
    object
        Instantiated object
    """
    # A bare string is a class name with no parameters
    if isinstance(cfg, str):
        cfg = {"name": cfg}

    config = deepcopy(cfg)
    assert "name" in config, "Could not find the name of the class under `name`"
    class_name = config.pop("name")

    # Check that the class we are looking for exists
    if class_name not in module_dict:
        raise ValueError(
            f"Could not find '{class_name}' in the dictionary which maps names "
            f"to classes. Available names: {sorted(module_dict)}"
        )

    # Top-level keys become keyword arguments
    for key in config:
        assert key not in kwargs, (
            f"The keyword argument {key} is provided in the configuration "
            "and by the caller. Ambiguous."
        )
    kwargs.update(config)

    cls = module_dict[class_name]
    try:
        return cls(**kwargs)

    except Exception as err:
        logger.error(
            "Failed to instantiate %s with these arguments:\n  - kwargs: %s",
            cls.__name__,
            kwargs,
        )

        raise err
