"""Tree-structured debate editor backend."""
