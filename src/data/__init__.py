"""Static asset loading."""
