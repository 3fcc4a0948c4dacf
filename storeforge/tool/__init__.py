"""Command line tool for storeforge."""
