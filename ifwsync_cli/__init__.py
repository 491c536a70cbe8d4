"""Command-line entrypoints for ifw-repo-sync."""
