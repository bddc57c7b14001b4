"""Generation, synchronization and the composition session."""
