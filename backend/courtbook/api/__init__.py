"""HTTP-facing dependency wiring."""
