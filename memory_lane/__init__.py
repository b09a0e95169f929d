"""Memory Lane: personal memories queried through Claude."""
