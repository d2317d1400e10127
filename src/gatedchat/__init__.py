"""Access-gated direct messaging service."""
