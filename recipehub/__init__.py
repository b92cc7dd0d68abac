"""RecipeHub follower push fan-out."""

__version__ = "0.1.0"
