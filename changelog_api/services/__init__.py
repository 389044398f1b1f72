"""Changelog pipeline services."""
