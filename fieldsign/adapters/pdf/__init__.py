"""PDF annotation adapters."""
