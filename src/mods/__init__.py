"""Installed MOD artifacts, manifests and the MOD list."""
