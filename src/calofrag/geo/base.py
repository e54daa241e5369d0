"""Module with a general-purpose calorimeter geometry class.

This class supports the storage of:
- Electromagnetic (ECal) and hadronic (HCal) section layer counts
- Magnetic field strength
- Muon system layer count
- Coil, muon endcap and calorimeter endcap boundaries
- Field strength in the muon system return yoke

It also provides a few functions to query the pseudolayer structure.
"""

from dataclasses import dataclass

__all__ = ["Geometry"]


@dataclass
class Geometry:
    """Pseudolayer structure of a sampling calorimeter.

    Pseudolayers are numbered from 1 at the front face of the ECal. The HCal
    layers immediately follow the ECal ones, such that the outermost
    calorimeter pseudolayer is `n_ecal_layers + n_hcal_layers`.

    Attributes
    ----------
    name : str
        Name of the detector
    tag : str
        Tag or label for the geometry instance
    version : str
        Version number of the geometry
    n_ecal_layers : int
        Number of layers in the ECal barrel
    n_hcal_layers : int
        Number of layers in the HCal barrel
    bfield : float
        Magnetic field strength inside the solenoid (T)
    n_muon_layers : int
        Number of layers in the muon system
    coil_inner_radius : float
        Inner radius of the solenoid coil (mm)
    coil_outer_radius : float
        Outer radius of the solenoid coil (mm)
    muon_endcap_inner_z : float
        Distance from the interaction point to the muon endcap front face (mm)
    ecal_endcap_inner_radius : float
        Inner radius of the ECal endcap (mm)
    hcal_endcap_inner_radius : float
        Inner radius of the HCal endcap (mm)
    muon_barrel_bfield : float
        Field strength in the barrel return yoke, opposite to the main
        field (T)
    muon_endcap_bfield : float
        Field strength in the endcap return yoke (T)
    """

    name: str
    tag: str
    version: str
    n_ecal_layers: int
    n_hcal_layers: int
    bfield: float
    n_muon_layers: int = 0
    coil_inner_radius: float = 3425.0
    coil_outer_radius: float = 4175.0
    muon_endcap_inner_z: float = 4072.0
    ecal_endcap_inner_radius: float = 400.0
    hcal_endcap_inner_radius: float = 350.0
    muon_barrel_bfield: float = 1.5
    muon_endcap_bfield: float = 4.0

    def __post_init__(self):
        """Checks the sanity of the layer counts."""
        self.version = str(self.version)
        assert self.n_ecal_layers > 0, "The ECal must have at least one layer."
        assert self.n_hcal_layers >= 0, "The HCal layer count must be non-negative."
        assert (
            self.coil_outer_radius >= self.coil_inner_radius
        ), "The coil outer radius must be larger than its inner radius."

    @property
    def coil_midpoint_radius(self):
        """Radius half way through the solenoid coil."""
        return 0.5 * (self.coil_inner_radius + self.coil_outer_radius)

    @property
    def outermost_layer(self):
        """Outermost calorimeter pseudolayer."""
        return self.n_ecal_layers + self.n_hcal_layers

    def deep_in_hcal(self, layer, n_layers):
        """Checks whether a pseudolayer lies beyond a certain HCal depth.

        Parameters
        ----------
        layer : int
            Pseudolayer
        n_layers : int
            Number of HCal layers which must be crossed

        Returns
        -------
        bool
            `True` if the layer is deeper than `n_layers` into the HCal
        """
        return layer > self.n_ecal_layers + n_layers
