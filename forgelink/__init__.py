"""
Forgelink - relays GitHub issue references and repository activity into a Matrix room.
"""

__version__ = "1.0.0"
