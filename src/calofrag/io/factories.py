"""Functions that instantiate IO tools from configuration blocks."""

from calofrag.utils.factory import instantiate, module_dict

from . import read, write

READER_DICT = module_dict(read)
WRITER_DICT = module_dict(write)

__all__ = ["reader_factory", "writer_factory"]


def reader_factory(reader_cfg, bfield=0.0):
    """Instantiates a reader based on the type specified in the configuration
    under `io.reader.name`.

    Parameters
    ----------
    reader_cfg : dict
        Reader configuration dictionary
    bfield : float, default 0.
        Magnetic field used to build the track helices

    Returns
    -------
    object
        Reader object
    """
    reader_cfg = dict(reader_cfg)
    reader_cfg.setdefault("name", "yaml")

    return instantiate(READER_DICT, reader_cfg, bfield=bfield)


def writer_factory(writer_cfg):
    """Instantiates a writer based on the type specified in the configuration
    under `io.writer.name`.

    Parameters
    ----------
    writer_cfg : dict
        Writer configuration dictionary

    Returns
    -------
    object
        Writer object
    """
    writer_cfg = dict(writer_cfg)
    writer_cfg.setdefault("name", "yaml")

    return instantiate(WRITER_DICT, writer_cfg)
