"""Stream I/O primitives."""
