"""arbor command-line interface."""
