"""Domain layer: value objects and ports, free of I/O."""
