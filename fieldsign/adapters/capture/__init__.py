"""Capture surface adapters that encode drawn signatures as raster images."""
