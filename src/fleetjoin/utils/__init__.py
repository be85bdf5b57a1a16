"""Utility helpers for fleetjoin."""
