"""Plugin dashboard toolkit: readiness state, containers and widgets, system monitoring and plugin scaffolding."""

__version__ = "0.1.0"