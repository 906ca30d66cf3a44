"""Feature modules built on the tree engine."""
