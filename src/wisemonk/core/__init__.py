"""Core subsystem — configuration, logging, errors, and shared primitives."""
