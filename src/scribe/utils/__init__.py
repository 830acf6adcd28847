"""Small shared helpers (logging, file IO)."""
