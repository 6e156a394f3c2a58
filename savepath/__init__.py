"""Save game location resolution for Legendary and GOG games"""

__version__ = "0.1.0"
