"""Kubernetes checks."""
