"""Team and worker grades."""
