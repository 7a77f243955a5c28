"""Normalization core: models, backends, timestamps and exclusion rules."""
