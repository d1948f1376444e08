"""Concrete adapters for the interfaces in :mod:`coach_rag.interfaces`."""
