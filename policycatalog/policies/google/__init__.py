"""Google Cloud checks."""
