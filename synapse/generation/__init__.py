"""Study item generation collaborators."""

from synapse.generation.fallback_generator import FallbackItemGenerator, ItemGenerator

__all__ = ["FallbackItemGenerator", "ItemGenerator"]
