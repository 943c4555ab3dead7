"""Error hierarchy for document loading and view control.

Fatal load errors (parse, structure, render) abort a load before any
session state is replaced. ViewError is raised by camera operations and
is always absorbed by the session.
"""


class KmlViewError(Exception):
    """Base class for errors surfaced to the user as a single message."""


class DocumentParseError(KmlViewError):
    """Raised when the document is not well-formed XML."""


class StructuralAbsenceError(KmlViewError):
    """Raised when the document has no Document or Folder root."""


class RenderLoadError(KmlViewError):
    """Raised when the renderer rejects the document content."""


class ViewError(KmlViewError):
    """Raised when the camera cannot be fitted to a data source."""


class DocumentReadError(KmlViewError):
    """Raised when the document file cannot be read."""


class NoDocumentError(KmlViewError):
    """Raised when a tree operation is requested before any document is loaded."""
