"""HTTP gateway for the travel journal API."""
