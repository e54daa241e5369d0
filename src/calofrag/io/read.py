"""Contains the event reader class.

Event files are YAML files with one document per event. Each document holds
the calorimeter hits, the tracks and the initial clusters of the event:

.. code-block:: yaml

    index: 0
    hits:
      - {id: 0, position: [1860., 0., 0.], pseudo_layer: 1,
         hadronic_energy: 0.45, hit_type: ecal}
    tracks:
      - {id: 0, energy_at_dca: 10., reference_point: [1850., 0., 0.],
         momentum: [10., 0., 0.], charge: 1}
    clusters:
      - {id: 0, hit_ids: [0], track_ids: [0]}
    hit_lists:
      muon: []
    cluster_lists:
      muon:
        - {hit_ids: []}
    mc_particles:
      - {id: 3, daughter_ids: [5]}
"""

import glob
import os

import yaml

from calofrag.data import CaloHit, Cluster, Event, HitType, Track
from calofrag.math.helix import Helix
from calofrag.utils.logger import logger

__all__ = ["EventReader"]


class EventReader:
    """Reads events from YAML files.

    This class provides these basic functions:
    1. Method to parse the requested file list or file list file into a list of
       paths to existing files (throws if nothing is found)
    2. Method to produce a list of entries in the file(s) as selected by the
       provided parameters
    3. Essential `__len__` and `__getitem__` methods, which build an
       :class:`Event` from one document

    Attributes
    ----------
    file_paths : List[str]
        List of files to read data from
    entry_index : List[int]
        List of global indexes to cycle through
    """

    name = "yaml"

    def __init__(
        self,
        file_keys,
        n_entry=None,
        n_skip=None,
        bfield=0.0,
        limit_num_files=None,
        max_print_files=10,
    ):
        """Initialize the reader and index the events in the files.

        Parameters
        ----------
        file_keys : Union[str, List[str]]
            Path or list of paths to the YAML files to be read. Glob patterns
            are expanded. A single `.txt` file is read as a list of paths.
        n_entry : int, optional
            Maximum number of entries to load
        n_skip : int, optional
            Number of entries to skip at the beginning
        bfield : float, default 0.
            Magnetic field used to build the track helices (T)
        limit_num_files : int, optional
            Integer limiting number of files to be taken per data directory
        max_print_files : int, default 10
            Maximum number of loaded file names to be printed
        """
        self.bfield = bfield
        self.process_file_paths(file_keys, limit_num_files, max_print_files)

        # Load every event document
        self.documents = []
        for path in self.file_paths:
            with open(path, "r", encoding="utf-8") as f:
                for doc in yaml.safe_load_all(f):
                    if doc is not None:
                        self.documents.append(doc)

        # Build the list of entries to access
        self.num_entries = len(self.documents)
        self.entry_index = self.process_entry_list(n_entry, n_skip)

    def __len__(self):
        """Returns the number of entries in the file(s).

        Returns
        -------
        int
            Number of entries in the file
        """
        return len(self.entry_index)

    def __getitem__(self, idx):
        """Returns a specific entry in the file.

        Parameters
        ----------
        idx : int
            Integer entry ID to access

        Returns
        -------
        Event
            One entry-worth of data from the loaded files
        """
        return self.get(idx)

    def __iter__(self):
        """Iterates over the selected entries."""
        for idx in range(len(self)):
            yield self.get(idx)

    def process_file_paths(self, file_keys, limit_num_files=None, max_print_files=10):
        """Process list of files.

        Parameters
        ----------
        file_keys : list
            List of paths to the YAML files to be read
        limit_num_files : int, optional
            Integer limiting number of files to be taken per data directory
        max_print_files : int, default 10
            Maximum number of loaded file names to be printed
        """
        # Some basic checks
        assert file_keys is not None, "No input `file_keys` provided, abort."
        assert (
            limit_num_files is None or limit_num_files > 0
        ), "If `limit_num_files` is provided, it must be larger than 0."

        # If the file_keys points to a single text file, it must be a text
        # file containing a list of file paths. Parse it to a list.
        if isinstance(file_keys, str) and os.path.splitext(file_keys)[-1] == ".txt":
            assert os.path.isfile(file_keys), (
                "If the `file_keys` are specified as a single string, "
                "it must be the path to a text file with a file list."
            )
            with open(file_keys, "r", encoding="utf-8") as f:
                file_keys = f.read().splitlines()

        # Convert the file keys to a list of file paths with glob
        self.file_paths = []
        if isinstance(file_keys, str):
            file_keys = [file_keys]
        for file_key in file_keys:
            file_paths = sorted(glob.glob(file_key))
            assert file_paths, f"File key {file_key} yielded no compatible path."
            for path in file_paths:
                if (
                    limit_num_files is not None
                    and len(self.file_paths) >= limit_num_files
                ):
                    break
                self.file_paths.append(path)

        # Print out the list of loaded files
        num_files = len(self.file_paths)
        file_list = " - " + "\n - ".join(self.file_paths[:max_print_files])
        file_list += "\n ... \n" if num_files > max_print_files else "\n"
        logger.info("Will load %d file(s):\n%s", num_files, file_list)

    def process_entry_list(self, n_entry=None, n_skip=None):
        """Create a list of entries that can be accessed by :meth:`__getitem__`.

        Parameters
        ----------
        n_entry : int, optional
            Maximum number of entries to load
        n_skip : int, optional
            Number of entries to skip at the beginning

        Returns
        -------
        list
            List of integer entry IDs in the index
        """
        assert n_skip is None or n_skip >= 0, "`n_skip` must be non-negative."
        assert n_entry is None or n_entry > 0, "`n_entry` must be positive."

        start = n_skip or 0
        assert start < self.num_entries or not self.num_entries, (
            f"Cannot skip {start} entries, the input only has "
            f"{self.num_entries} entries."
        )
        end = self.num_entries if n_entry is None else start + n_entry

        return list(range(start, min(end, self.num_entries)))

    def get(self, idx):
        """Builds the event corresponding to one entry.

        Parameters
        ----------
        idx : int
            Integer entry ID to access

        Returns
        -------
        Event
            Event container
        """
        entry = self.entry_index[idx]
        doc = self.documents[entry]

        return self.parse_event(doc, doc.get("index", entry), self.bfield)

    @staticmethod
    def parse_hit(hit):
        """Builds a calorimeter hit from its dictionary form.

        Parameters
        ----------
        hit : dict
            Hit attributes

        Returns
        -------
        CaloHit
            Calorimeter hit
        """
        hit = dict(hit)
        if isinstance(hit.get("hit_type"), str):
            hit["hit_type"] = HitType[hit["hit_type"].upper()]

        return CaloHit(**hit)

    @staticmethod
    def parse_track(track, bfield):
        """Builds a track from its dictionary form.

        Parameters
        ----------
        track : dict
            Track attributes, including the helix reference point, momentum
            and charge when a helix is available
        bfield : float
            Magnetic field (T)

        Returns
        -------
        Track
            Track object
        """
        track = dict(track)
        reference_point = track.pop("reference_point", None)
        momentum = track.pop("momentum", None)
        charge = track.pop("charge", 0)
        helix = None
        if reference_point is not None and momentum is not None:
            helix = Helix(reference_point, momentum, charge, bfield)

        return Track(helix=helix, **track)

    @classmethod
    def parse_event(cls, doc, index, bfield):
        """Builds an event from its dictionary form.

        Parameters
        ----------
        doc : dict
            Event document
        index : int
            Index of the event
        bfield : float
            Magnetic field (T)

        Returns
        -------
        Event
            Event container
        """
        hits = {}
        for hit in doc.get("hits") or []:
            hit = cls.parse_hit(hit)
            assert hit.id not in hits, f"Duplicate hit ID {hit.id} in event {index}."
            hits[hit.id] = hit

        tracks = [cls.parse_track(t, bfield) for t in doc.get("tracks") or []]

        clusters = []
        for cluster in doc.get("clusters") or []:
            cluster = dict(cluster)
            hit_ids = cluster.pop("hit_ids", [])
            clusters.append(Cluster(hits=[hits[i] for i in hit_ids], **cluster))

        hit_lists = {}
        for name, hit_ids in (doc.get("hit_lists") or {}).items():
            hit_lists[name] = [hits[i] for i in hit_ids]

        cluster_lists = {}
        for name, cluster_list in (doc.get("cluster_lists") or {}).items():
            cluster_lists[name] = []
            for cluster in cluster_list or []:
                cluster = dict(cluster)
                hit_ids = cluster.pop("hit_ids", [])
                cluster_lists[name].append(
                    Cluster(hits=[hits[i] for i in hit_ids], **cluster)
                )

        mc_daughters = {}
        for particle in doc.get("mc_particles") or []:
            mc_daughters[particle["id"]] = list(particle.get("daughter_ids") or [])

        return Event(
            index,
            clusters=clusters,
            tracks=tracks,
            hit_lists=hit_lists,
            cluster_lists=cluster_lists,
            mc_daughters=mc_daughters,
        )
