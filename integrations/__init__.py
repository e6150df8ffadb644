"""Chain integrations: live (ethereum) and in-memory (simulated)."""
