"""LAN file sharing and chat backend."""

__version__ = '2.0.0'
