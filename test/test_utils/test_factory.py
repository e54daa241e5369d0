"""Tests for the configuration-driven class factory."""

import pytest

from calofrag.reco import looping
from calofrag.utils.factory import instantiate, module_dict


class Dummy:
    """Minimal configurable class."""

    name = "dummy"
    aliases = ("dumb",)

    def __init__(self, value=1, scale=2):
        self.value = value
        self.scale = scale


class TestModuleDict:
    """Conversion of modules to name/class maps."""

    def test_module(self):
        """Only the public classes defined in the module are listed."""
        options = module_dict(looping)
        assert set(options) == {"LoopingTracksAlgorithm", "looping_tracks"}


class TestInstantiate:
    """Instantiation from configuration blocks."""

    options = {"Dummy": Dummy, "dummy": Dummy, "dumb": Dummy}

    def test_string(self):
        """A bare name builds a class with default parameters."""
        obj = instantiate(self.options, "dumb")
        assert isinstance(obj, Dummy)
        assert obj.value == 1

    def test_block(self):
        """Block keys and caller arguments are combined."""
        cfg = {"name": "dummy", "value": 5}
        obj = instantiate(self.options, cfg, scale=3)
        assert (obj.value, obj.scale) == (5, 3)
        assert cfg == {"name": "dummy", "value": 5}

    def test_ambiguous(self):
        """A parameter cannot be provided twice."""
        with pytest.raises(AssertionError):
            instantiate(self.options, {"name": "dummy", "value": 5}, value=3)

    def test_unknown(self):
        """Unknown names are rejected."""
        with pytest.raises(ValueError):
            instantiate(self.options, "clever")

    def test_bad_parameter(self):
        """Constructor errors are propagated."""
        with pytest.raises(TypeError):
            instantiate(self.options, {"name": "dummy", "values": 5})
