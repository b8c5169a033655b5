"""Metaheuristic dispatch planning for hybrid microgrids."""

__version__ = "0.1.0"
