"""
Loaders, matchers and store helpers for custom dictionary sources.
"""
