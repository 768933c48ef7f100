"""Boundary layer: adapters to external systems."""
