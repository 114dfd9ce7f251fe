"""Dependency graph: entries, execution context and standalone deps."""
