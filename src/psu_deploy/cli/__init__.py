"""Command-line entry points: bulk deployment and single-device deployment."""
