"""blastradius: dependency impact analysis for code graphs."""

__version__ = "0.3.0"
