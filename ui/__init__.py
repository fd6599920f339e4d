"""Terminal client for the travel journal API."""
