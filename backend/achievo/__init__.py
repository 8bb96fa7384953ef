"""Application package for the Achievo backend.

This package exposes the service, repository, mapper and model modules
used by the FastAPI application. It is intentionally lightweight;
individual modules contain the concrete implementations and
documentation.
"""
