"""Pure domain primitives with no storage or framework dependencies."""
