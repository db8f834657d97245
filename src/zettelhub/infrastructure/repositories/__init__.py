"""Read-side repositories over the index store."""
