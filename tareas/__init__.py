"""Pure-Python image writers and filters, a text dungeon crawler and a ride-graph reader."""

__version__ = "0.1.0"

__all__ = ["game", "imaging", "jpeg", "mapfile", "png", "rawformats", "rides"]