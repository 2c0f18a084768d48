"""Utilities for AquaWatch."""
