"""Pure computational services."""
