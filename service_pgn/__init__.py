"""PGN gateway service."""
