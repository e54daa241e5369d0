"""calofrag driver class.

Takes care of everything in one centralized place:
- Geometry loading
- Event reading
- Reconstruction algorithm chain
- Summary writing
"""

import yaml

from .geo import geo_factory
from .io import reader_factory, writer_factory
from .reco import AlgorithmManager
from .utils.logger import logger
from .utils.stopwatch import StopwatchManager
from .version import __version__

__all__ = ["Driver"]


class Driver:
    """Central calofrag driver.

    Processes global configuration and runs the appropriate modules:
      1. Load the detector geometry
      2. Read events
      3. Run the reconstruction algorithms
      4. Write the event summaries to file

    It takes a configuration dictionary of the form:

    .. code-block:: yaml

        base:
          verbosity: info
        geo: ild
        io:
          reader:
            file_keys: events.yaml
          writer:
            file_name: output.yaml
        reco:
          muon_reconstruction:
            priority: 2
          looping_tracks:
            priority: 1
          fragment_removal:
            min_daughter_calo_hits: 5
    """

    def __init__(self, cfg):
        """Initializes the class attributes.

        Parameters
        ----------
        cfg : dict
            Global configuration dictionary
        """
        # Initialize the timers
        self.watch = StopwatchManager()
        self.watch.initialize("iteration")
        self.watch.initialize("read")
        self.watch.initialize("reco")

        # Process the full configuration dictionary and store it
        base, geo, io, reco = self.process_config(**cfg)

        # Load the detector geometry
        self.geo = self.initialize_geo(geo)

        # Initialize the input/output
        self.initialize_io(**io)

        # Initialize the reconstruction algorithms
        self.reco = None
        if reco is not None:
            self.reco = AlgorithmManager(reco, geometry=self.geo)

    def __len__(self):
        """Number of events to process."""
        return len(self.reader)

    def process_config(self, io, geo, base=None, reco=None):
        """Reads the configuration and dumps it to the logger.

        Parameters
        ----------
        io : dict
            I/O configuration dictionary
        geo : Union[str, dict]
            Detector preset name or geometry configuration dictionary
        base : dict, optional
            Base driver configuration dictionary
        reco : dict, optional
            Reconstruction algorithm configuration dictionary

        Returns
        -------
        tuple
            Processed base, geometry, I/O and reconstruction blocks
        """
        # If there is no base configuration, make it empty (will use defaults)
        if base is None:
            base = {}

        # Set the verbosity of the logger
        verbosity = base.get("verbosity", "info")
        logger.setLevel(verbosity.upper())

        # Rebuild global configuration dictionary
        self.cfg = {"base": base, "geo": geo, "io": io}
        if reco is not None:
            self.cfg["reco"] = reco

        # Log environment information and configuration
        logger.info("Release version: %s\n", __version__)
        logger.info(yaml.dump(self.cfg, default_flow_style=None, sort_keys=False))

        return base, geo, io, reco

    @staticmethod
    def initialize_geo(geo):
        """Loads the detector geometry.

        Parameters
        ----------
        geo : Union[str, dict]
            Detector preset name or geometry configuration dictionary

        Returns
        -------
        Geometry
            Detector geometry
        """
        if isinstance(geo, str):
            return geo_factory(detector=geo)

        return geo_factory(**geo)

    def initialize_io(self, reader, writer=None):
        """Initializes the input/output scripts.

        Parameters
        ----------
        reader : dict
            Reader configuration dictionary
        writer : dict, optional
            Writer configuration dictionary
        """
        self.reader = reader_factory(reader, bfield=self.geo.bfield)

        self.writer = None
        if writer is not None:
            self.writer = writer_factory(writer)

    def run(self):
        """Loop over the requested events, process them.

        Returns
        -------
        List[dict]
            Summary of each processed event
        """
        summaries = []
        for entry in range(len(self.reader)):
            summaries.append(self.process(entry))

        return summaries

    def process(self, entry):
        """Process one entry.

        Parameters
        ----------
        entry : int
            Entry number to load

        Returns
        -------
        dict
            Summary of the event after reconstruction
        """
        self.watch.start("iteration")

        # Load the event
        self.watch.start("read")
        event = self.reader[entry]
        self.watch.stop("read")
        n_input_clusters = len(event.clusters)

        # Run the reconstruction algorithms
        self.watch.start("reco")
        results = self.reco(event) if self.reco is not None else {}
        self.watch.stop("reco")

        # Build the summary and write it to file
        summary = event.as_dict()
        summary["n_input_clusters"] = n_input_clusters
        summary["n_clusters"] = len(event.clusters)
        summary["reco"] = results
        if self.writer is not None:
            self.writer.append(summary)

        self.watch.stop("iteration")
        logger.info(
            "%s (from %d) in %.3f s",
            event.summary(),
            n_input_clusters,
            self.watch.time("iteration").wall,
        )

        return summary
