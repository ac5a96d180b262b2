"""Core runtime helpers: logging, errors and application wiring."""
