"""Contains base class of all reconstruction algorithms."""

from abc import ABC, abstractmethod

__all__ = ["AlgorithmBase"]


class AlgorithmBase(ABC):
    """Base class of all reconstruction algorithms.

    This base class performs the following functions:
      - Ensures that the necessary method exist
      - Checks that the algorithm is provided the event content it needs
        to do its job

    Attributes
    ----------
    name : str
        Name of the algorithm as defined in the configuration file
    aliases : Tuple[str]
        Alternative acceptable names for an algorithm
    need_geometry : bool
        Whether the algorithm must be provided the detector geometry
    """

    # Name of the algorithm (as specified in the configuration)
    name = ""

    # Alternative allowed names of the algorithm
    aliases = ()

    # Whether the geometry must be provided at construction
    need_geometry = False

    # Event attributes which must be present to run
    _keys = ("clusters",)

    def __call__(self, event):
        """Calls the algorithm on one event.

        Parameters
        ----------
        event : Event
            Event container

        Returns
        -------
        dict
            Summary of what the algorithm did
        """
        # Check that the required event content is available
        for key in self._keys:
            assert hasattr(event, key), (
                f"Algorithm `{self.name}` is missing an essential input to "
                f"be used: `{key}`."
            )

        # Run the algorithm
        return self.process(event)

    @abstractmethod
    def process(self, event):
        """Place-holder method to be defined in each algorithm.

        Parameters
        ----------
        event : Event
            Event container
        """
        raise NotImplementedError
