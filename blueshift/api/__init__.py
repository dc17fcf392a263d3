"""HTTP API for blueshift."""
