"""GPS sample sources."""
