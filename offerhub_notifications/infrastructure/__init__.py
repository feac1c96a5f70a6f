"""Adapters to external systems: delivery providers, websockets and email."""
