"""Helpers shared by routers and services (uploads, throttling)."""
