"""LinkUp social network backend.

This package exposes the model, repository, service and router modules used
by the FastAPI application defined in `linkup.main`. Individual modules
contain the concrete implementations and documentation.
"""
