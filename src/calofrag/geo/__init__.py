"""Calorimeter geometry and detector presets."""

from .base import Geometry
from .factories import geo_factory
