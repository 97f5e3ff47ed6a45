"""
Core engine: models, configuration and schema inference.
"""
