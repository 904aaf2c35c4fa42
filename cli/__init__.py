"""Command line entry points for Canvas Participation Verify."""
