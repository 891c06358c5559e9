"""Backend handler adapters (the protected authentication server)."""
