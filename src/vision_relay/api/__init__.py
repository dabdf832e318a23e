"""HTTP surface of the vision relay."""
