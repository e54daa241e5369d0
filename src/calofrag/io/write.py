"""Module to write reconstruction summaries to file."""

import os

import yaml

__all__ = ["SummaryWriter", "CSVWriter"]


class SummaryWriter:
    """Writes the final clusters of each event to a YAML file.

    Each event is written as a separate YAML document, such that the output
    can be streamed back with `yaml.safe_load_all`.

    Typical configuration should look like:

    .. code-block:: yaml

        io:
          ...
          writer:
            name: yaml
            file_name: output.yaml
    """

    name = "yaml"

    def __init__(self, file_name="output.yaml", overwrite=False):
        """Initialize the basics of the output file.

        Parameters
        ----------
        file_name : str, default 'output.yaml'
            Name of the output YAML file
        overwrite : bool, default False
            If True, overwrite the output file if it already exists
        """
        # Check that output file does not already exist, if requested
        if not overwrite and os.path.isfile(file_name):
            raise FileExistsError(f"File with name {file_name} already exists.")

        self.file_name = file_name
        self.ready = False

    def create(self):
        """Creates an empty output file."""
        with open(self.file_name, "w", encoding="utf-8"):
            pass

        self.ready = True

    def append(self, summary):
        """Append one event summary to the file.

        Parameters
        ----------
        summary : dict
            Event summary
        """
        if not self.ready:
            self.create()

        with open(self.file_name, "a", encoding="utf-8") as out_file:
            yaml.safe_dump(
                summary,
                out_file,
                explicit_start=True,
                default_flow_style=None,
                sort_keys=False,
            )


class CSVWriter:
    """Writes flat per-event statistics to a CSV file.

    It can only be used to store relatively basic quantities (scalars,
    strings, etc.). Nested summaries are flattened with `.` separators.

    Typical configuration should look like:

    .. code-block:: yaml

        io:
          ...
          writer:
            name: csv
            file_name: output.csv
    """

    name = "csv"

    def __init__(self, file_name="output.csv", overwrite=False):
        """Initialize the basics of the output file.

        Parameters
        ----------
        file_name : str, default 'output.csv'
            Name of the output CSV file
        overwrite : bool, default False
            If True, overwrite the output file if it already exists
        """
        # Check that output file does not already exist, if requested
        if not overwrite and os.path.isfile(file_name):
            raise FileExistsError(f"File with name {file_name} already exists.")

        self.file_name = file_name
        self.result_keys = None

    @staticmethod
    def flatten(summary, prefix=""):
        """Flattens a nested dictionary of scalars.

        List values (e.g. the cluster list) are skipped.

        Parameters
        ----------
        summary : dict
            Nested dictionary
        prefix : str, default ''
            Prefix of the keys at this level

        Returns
        -------
        dict
            Flat dictionary
        """
        flat = {}
        for key, value in summary.items():
            name = f"{prefix}{key}"
            if isinstance(value, dict):
                flat.update(CSVWriter.flatten(value, f"{name}."))
            elif not isinstance(value, (list, tuple)):
                flat[name] = value

        return flat

    def create(self, result_blob):
        """Initialize the header of the CSV file, record the keys to be stored.

        Parameters
        ----------
        result_blob : dict
            Flat dictionary of event statistics
        """
        # Save the list of keys to store
        self.result_keys = list(result_blob.keys())

        # Create a header and write it to file
        with open(self.file_name, "w", encoding="utf-8") as out_file:
            out_file.write(",".join(self.result_keys) + "\n")

    def append(self, summary):
        """Append the CSV file with the statistics of one event.

        Parameters
        ----------
        summary : dict
            Event summary
        """
        result_blob = self.flatten(summary)
        if self.result_keys is None:
            self.create(result_blob)

        elif list(result_blob.keys()) != self.result_keys:
            raise AssertionError(
                "The keys of this entry do not match those present when the "
                f"CSV file was initialized: {list(result_blob.keys())} vs "
                f"{self.result_keys}."
            )

        with open(self.file_name, "a", encoding="utf-8") as out_file:
            result_str = ",".join([str(result_blob[k]) for k in self.result_keys])
            out_file.write(result_str + "\n")
