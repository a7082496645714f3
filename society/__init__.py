"""Society management backend: resident accounts and maintenance payments."""
