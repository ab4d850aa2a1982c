"""Domain types and repository protocols."""
