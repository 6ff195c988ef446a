"""Sync transport adapters for pushing records to the remote endpoint."""
