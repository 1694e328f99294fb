"""Operator-facing console output."""
