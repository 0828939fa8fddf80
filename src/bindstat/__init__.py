"""bindstat - name-server statistics channel collector."""

__version__ = "0.1.0"
