"""Tests for the summary writers."""

import pytest
import yaml

from calofrag.io import CSVWriter, SummaryWriter, writer_factory


@pytest.fixture
def summaries():
    """Two minimal event summaries."""
    return [
        {
            "index": i,
            "clusters": [{"id": 0, "hit_ids": [0, 1]}],
            "n_clusters": 1,
            "reco": {"fragment_removal": {"n_merges": i}},
        }
        for i in range(2)
    ]


class TestSummaryWriter:
    """Event summaries as YAML documents."""

    def test_write(self, tmp_path, summaries):
        """One document per event."""
        path = tmp_path / "out.yaml"
        writer = SummaryWriter(str(path))
        for summary in summaries:
            writer.append(summary)

        with open(path, "r", encoding="utf-8") as f:
            docs = list(yaml.safe_load_all(f))
        assert docs == summaries

    def test_overwrite(self, tmp_path):
        """Existing files are only replaced on request."""
        path = tmp_path / "out.yaml"
        path.write_text("")
        with pytest.raises(FileExistsError):
            SummaryWriter(str(path))
        SummaryWriter(str(path), overwrite=True)

    def test_factory(self, tmp_path):
        """The default writer is the YAML one."""
        writer = writer_factory({"file_name": str(tmp_path / "out.yaml")})
        assert isinstance(writer, SummaryWriter)


class TestCSVWriter:
    """Flat event statistics as CSV rows."""

    def test_flatten(self, summaries):
        """Nested blocks are flattened, lists are dropped."""
        flat = CSVWriter.flatten(summaries[1])
        assert flat == {
            "index": 1,
            "n_clusters": 1,
            "reco.fragment_removal.n_merges": 1,
        }

    def test_write(self, tmp_path, summaries):
        """One header, then one row per event."""
        path = tmp_path / "out.csv"
        writer = writer_factory({"name": "csv", "file_name": str(path)})
        for summary in summaries:
            writer.append(summary)

        lines = path.read_text().splitlines()
        assert lines == [
            "index,n_clusters,reco.fragment_removal.n_merges",
            "0,1,0",
            "1,1,1",
        ]

    def test_key_mismatch(self, tmp_path, summaries):
        """All rows must share the same keys."""
        writer = CSVWriter(str(tmp_path / "out.csv"))
        writer.append(summaries[0])
        with pytest.raises(AssertionError):
            writer.append({"index": 2})
