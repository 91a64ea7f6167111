"""Meetpoint backend.

Finds venues around the geographic midpoint of two locations.
"""
