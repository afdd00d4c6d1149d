"""StatusGuard - health-check scheduling and incident lifecycle engine."""

__version__ = "1.0.0"
