"""Core types: results, exit codes, configuration and project detection."""
