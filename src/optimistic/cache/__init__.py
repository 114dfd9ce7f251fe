"""Bounded caches used by wrapped functions."""
