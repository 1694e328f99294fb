"""Auxiliary developer workflows."""
