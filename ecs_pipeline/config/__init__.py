"""Deployment configuration: presets, raw contracts and normalized settings."""
