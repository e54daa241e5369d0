"""Input/output tools: event readers and summary writers."""

from .factories import reader_factory, writer_factory
from .read import EventReader
from .write import CSVWriter, SummaryWriter
