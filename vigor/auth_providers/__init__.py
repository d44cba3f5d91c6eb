"""Pluggable bearer-token authentication providers."""
