"""Tests for the reconstruction algorithm registry and chain."""

import pytest

from calofrag.reco import AlgorithmManager, algorithm_factory
from calofrag.reco.factories import ALGO_DICT
from calofrag.reco.fragment.removal import FragmentRemovalAlgorithm
from calofrag.reco.looping import LoopingTracksAlgorithm


class TestFactory:
    """Algorithm registry."""

    def test_registry(self):
        """Algorithms are registered under their class name, name and aliases."""
        assert ALGO_DICT["fragment_removal"] is FragmentRemovalAlgorithm
        assert ALGO_DICT["main_fragment_removal"] is FragmentRemovalAlgorithm
        assert ALGO_DICT["LoopingTracksAlgorithm"] is LoopingTracksAlgorithm

    def test_alias(self, geometry):
        """Aliases build the same algorithm."""
        algo = algorithm_factory("main_fragment_removal", {}, geometry=geometry)
        assert isinstance(algo, FragmentRemovalAlgorithm)

    def test_parameters(self, geometry):
        """Configuration parameters are passed to the constructor."""
        algo = algorithm_factory(
            "looping_tracks", {"n_layers_to_fit": 7}, geometry=geometry
        )
        assert algo.n_layers_to_fit == 7

    def test_unknown(self, geometry):
        """Unknown algorithm names list the valid ones."""
        with pytest.raises(ValueError, match="fragment_removal"):
            algorithm_factory("fragment_remover", {}, geometry=geometry)

    def test_missing_geometry(self):
        """Algorithms which need a geometry must be provided one."""
        with pytest.raises(AssertionError):
            algorithm_factory("fragment_removal", {})


class TestManager:
    """Chain of reconstruction algorithms."""

    def test_priority(self, geometry):
        """Algorithms run by decreasing priority, in order on ties."""
        cfg = {
            "fragment_removal": None,
            "looping_tracks": {"priority": 1},
        }
        manager = AlgorithmManager(cfg, geometry=geometry)
        assert list(manager.modules) == ["looping_tracks", "fragment_removal"]
        assert "priority" in cfg["looping_tracks"]

    def test_ties(self, geometry):
        """Configuration order is kept among equal priorities."""
        cfg = {"fragment_removal": {}, "looping_tracks": {}}
        manager = AlgorithmManager(cfg, geometry=geometry)
        assert list(manager.modules) == ["fragment_removal", "looping_tracks"]

    def test_run(self, geometry, make_event):
        """Each algorithm reports what it did on an event."""
        manager = AlgorithmManager(
            {"looping_tracks": {}, "fragment_removal": {}}, geometry=geometry
        )
        event = make_event(y=15.0)
        results = manager(event)
        assert results == {
            "looping_tracks": {"n_merges": 0},
            "fragment_removal": {"n_merges": 1},
        }
        assert manager.watch.time("fragment_removal").wall >= 0.0
