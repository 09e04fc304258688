"""Self-service channel membership for multi-channel guests."""
