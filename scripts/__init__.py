"""Command line tools for the balance kernel."""
