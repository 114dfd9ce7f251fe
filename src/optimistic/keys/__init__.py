"""Canonical key derivation."""
