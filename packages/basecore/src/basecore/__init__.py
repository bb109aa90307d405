"""Shared infrastructure helpers: settings, logging, Redis and database access."""
