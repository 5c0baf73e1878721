"""Terminal interface for wortschatz."""
