"""Access token verification."""
