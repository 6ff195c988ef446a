"""Connectivity adapters reporting online state and restored-connection events."""
