"""Storage layer: engine, sessions and shared tables."""
