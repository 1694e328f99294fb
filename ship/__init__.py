"""Release tooling for the awesomelify server image."""

__version__ = "0.1.0"
