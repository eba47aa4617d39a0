"""Various helpers used by the live stream."""
