"""MOD versions, requirements and dependency string parsing."""
