"""KML document parsing."""

from kmlview.layers.parsers.kml import parse_kml_document

__all__ = ["parse_kml_document"]
