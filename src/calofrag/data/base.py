"""Module with a parent class of all data structures."""

from dataclasses import dataclass

import numpy as np


@dataclass(eq=False)
class DataBase:
    """Base class of all data structures.

    Defines basic methods shared by all data structures.
    """

    # Fixed-length attributes as (key, size) pairs
    _fixed_length_attrs = ()

    # Attributes that must never be exported
    _skip_attrs = ()

    def __post_init__(self):
        """Immediately called after building the class attributes.

        Gives default values to fixed-length array attributes and casts the
        provided ones to double precision arrays. If a default array was
        provided in the attribute definition, all instances of this class
        would point to the same memory location.
        """
        for attr, size in self._fixed_length_attrs:
            value = getattr(self, attr)
            if value is None:
                setattr(self, attr, np.full(size, -np.inf, dtype=np.float64))
            else:
                value = np.asarray(value, dtype=np.float64)
                assert value.shape == (size,), (
                    f"Attribute `{attr}` of `{self.__class__.__name__}` must "
                    f"have shape ({size},), got {value.shape}."
                )
                setattr(self, attr, value)

    def __eq__(self, other):
        """Checks that all attributes of two class instances are the same.

        Parameters
        ----------
        other : obj
            Other instance of the same object class

        Returns
        -------
        bool
            `True` if all attributes of both objects are identical
        """
        if self.__class__ != other.__class__:
            return False

        for k, v in self.__dict__.items():
            if k.startswith("_"):
                continue
            v_other = getattr(other, k)
            if isinstance(v, np.ndarray):
                if v.shape != v_other.shape or (v_other != v).any():
                    return False
            elif v != v_other:
                return False

        return True

    def as_dict(self):
        """Returns the data class as dictionary of (key, value) pairs.

        Arrays are converted to lists so that the output can be serialized.

        Returns
        -------
        dict
            Dictionary of attribute names and their values
        """
        out = {}
        for k, v in self.__dict__.items():
            if k.startswith("_") or k in self._skip_attrs:
                continue
            out[k] = v.tolist() if isinstance(v, np.ndarray) else v

        return out
