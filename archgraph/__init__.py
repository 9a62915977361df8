"""
archgraph - relationship graph engine for enterprise architecture cards.
"""

__version__ = "0.1.0"
