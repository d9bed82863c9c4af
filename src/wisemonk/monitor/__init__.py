"""Monitor subsystem — per-channel activity tracking, commands, and alerts."""
