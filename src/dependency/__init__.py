"""Dependency graph construction, algorithms and validation."""
