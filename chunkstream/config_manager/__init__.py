"""Upload configuration."""
