"""Snapshot producers: the Di-Plus poll source and the GPS enricher."""

from bydhass.sources.base import Enricher, PollSource
from bydhass.sources.diplus import DiplusClient
from bydhass.sources.location import FileLocationProvider

__all__ = ["DiplusClient", "Enricher", "FileLocationProvider", "PollSource"]
