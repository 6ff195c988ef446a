"""Command-line interface adapter.

Provides capture, listing, export, and sync commands on top of the
capture service and record store.
"""
