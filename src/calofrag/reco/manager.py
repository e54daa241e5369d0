"""Manages the operation of reconstruction algorithms."""

from collections import OrderedDict
from copy import deepcopy

import numpy as np

from calofrag.utils.logger import logger
from calofrag.utils.stopwatch import StopwatchManager

from .factories import algorithm_factory

__all__ = ["AlgorithmManager"]


class AlgorithmManager:
    """Manager in charge of handling the reconstruction algorithm chain.

    It loads all the algorithm objects once and feeds them events.
    """

    def __init__(self, cfg, geometry=None):
        """Initialize the reconstruction manager.

        Parameters
        ----------
        cfg : dict
            Reconstruction algorithm configurations
        geometry : Geometry, optional
            Calorimeter geometry
        """
        # Loop over the algorithms and get their priorities
        cfg = deepcopy(cfg)
        keys = np.array(list(cfg.keys()))
        priorities = -np.ones(len(keys), dtype=np.int32)
        for i, key in enumerate(keys):
            if cfg[key] is None:
                cfg[key] = {}
            if "priority" in cfg[key]:
                priorities[i] = cfg[key].pop("priority")

        # Add the algorithms to a list in decreasing order of priority
        self.watch = StopwatchManager()
        self.modules = OrderedDict()
        keys = [str(k) for k in keys[np.argsort(-priorities, kind="stable")]]
        for key in keys:
            # Profile the algorithm
            self.watch.initialize(key)

            # Append
            self.modules[key] = algorithm_factory(key, cfg[key], geometry=geometry)

    def __call__(self, event):
        """Pass one event through the reconstruction algorithms.

        Parameters
        ----------
        event : Event
            Event container

        Returns
        -------
        dict
            Summary of each algorithm, keyed by algorithm name
        """
        results = {}
        for key, module in self.modules.items():
            n_clusters = len(event.clusters)
            self.watch.start(key)
            result = module(event)
            self.watch.stop(key)

            logger.debug(
                "Ran `%s`: %d -> %d clusters in %.3f s",
                key,
                n_clusters,
                len(event.clusters),
                self.watch.time(key).wall,
            )
            results[key] = result if result is not None else {}

        return results
