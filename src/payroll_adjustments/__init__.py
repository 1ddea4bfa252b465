"""Compensation adjustment computation and batch generation."""

__version__ = "0.1.0"
