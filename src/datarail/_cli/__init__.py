"""Command line interface for datarail."""
