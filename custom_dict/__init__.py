"""
Custom dictionary data package.
Merges hand-curated lexical records into an existing JMdict-style store.
"""

__version__ = '1.0.0'
