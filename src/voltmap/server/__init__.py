"""Voltmap HTTP API: Starlette app, auth, error responses and operator CLI."""
