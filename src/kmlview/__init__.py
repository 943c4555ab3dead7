"""KMLVIEW — KML places tree with per-subtree visibility toggles.

The core reconciles a parsed folder/placemark tree with the flat entity
collection produced by an independent renderer, then projects tri-state
toggle state onto entity visibility.
"""

__version__ = "0.1.0"
