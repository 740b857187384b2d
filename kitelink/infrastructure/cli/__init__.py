"""Console rendering for the kitelink command line."""
