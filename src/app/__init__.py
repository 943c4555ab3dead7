"""KMLVIEW HTTP application."""
