"""Image registry, build project, release pipeline and its leaf functions."""
