"""Adapters for external collaborators: the model API, workspace tools and artifact files."""
