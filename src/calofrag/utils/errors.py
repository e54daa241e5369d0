"""Typed exceptions raised while running reconstruction algorithms.

Configuration problems are reported through :mod:`calofrag.config.errors`
instead. Everything defined here derives from :class:`CalofragError`.
"""


class CalofragError(Exception):
    """Base exception for all runtime reconstruction errors."""


class ListNotFoundError(CalofragError, KeyError):
    """Raised when a named hit/cluster/track list is absent from an event.

    Callers usually treat this as "nothing to do" rather than as fatal.
    """


class ContainerError(CalofragError):
    """Raised when a request on the cluster/track/hit container fails."""


class ContactInvariantError(CalofragError):
    """Raised when a cluster contact is stored under the wrong daughter."""

    def __init__(self, key, daughter_id):
        """Initialize with the offending identifiers.

        Parameters
        ----------
        key : int
            Contact map key under which the contact was found
        daughter_id : int
            Daughter cluster ID stored in the contact itself
        """
        self.key = key
        self.daughter_id = daughter_id
        super().__init__(
            f"Contact stored under daughter {key} refers to daughter "
            f"{daughter_id}."
        )


class CompatibilityError(CalofragError):
    """Raised when a track-cluster compatibility cannot be evaluated."""
