"""Multi-tenant lead capture funnels."""

__version__ = "0.1.0"
