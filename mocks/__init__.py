"""In-process mock servers for local development and integration tests."""
