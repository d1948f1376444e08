"""Shared utilities: error hierarchy, structured logging, rate limiting."""
