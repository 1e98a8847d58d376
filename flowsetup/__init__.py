"""Flow setup — health checks and setup dashboard for a Flow distribution."""

__version__ = "0.1.0"
