"""Places core — KML tree, toggles, entity reconciliation, visibility.

Parsing and rendering use only Python stdlib (xml.etree.ElementTree).
"""

from kmlview.layers.layer import DataSource, FeatureElement, GeometryPresence, RenderableInstance
from kmlview.layers.reconcile import ReconciliationMap, reconcile
from kmlview.layers.tree import FeatureNode, NodeKind, PlaceTree, build_tree
from kmlview.layers.visibility import ProjectionMode, VisibilityReport, project_visibility

__all__ = [
    "DataSource",
    "FeatureElement",
    "FeatureNode",
    "GeometryPresence",
    "NodeKind",
    "PlaceTree",
    "ProjectionMode",
    "ReconciliationMap",
    "RenderableInstance",
    "VisibilityReport",
    "build_tree",
    "project_visibility",
    "reconcile",
]
