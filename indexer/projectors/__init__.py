"""Event projectors, one module per contract family."""
