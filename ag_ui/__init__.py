"""Command-line front end for archgates."""
