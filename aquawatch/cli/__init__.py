"""Command line interface for AquaWatch."""
