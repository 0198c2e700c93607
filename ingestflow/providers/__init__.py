"""Concrete adapters for the interfaces in :mod:`ingestflow.interfaces`."""
