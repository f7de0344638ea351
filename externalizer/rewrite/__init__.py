"""Source rewriting: import management and the commit phase."""
