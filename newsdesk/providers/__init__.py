"""Search providers returning raw articles for a topic query profile."""
