"""HTTP API for SRM Collab."""
