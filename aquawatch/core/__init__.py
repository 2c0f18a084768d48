"""Core layer for AquaWatch: domain models, exceptions and pure services."""
