"""Wisemonk command-line interface."""
