"""Connectivity tracking for uploads."""
