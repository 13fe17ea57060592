"""Maintenance utilities for registry data."""
