"""Azure checks."""
