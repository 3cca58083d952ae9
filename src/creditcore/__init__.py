"""Per-user credit accounting for metered image generation."""
