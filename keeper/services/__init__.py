"""Services used by the engine."""
