"""HTTP API for the pocket agent."""
