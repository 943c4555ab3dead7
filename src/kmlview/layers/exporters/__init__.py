"""Read-only exports of the places tree."""
