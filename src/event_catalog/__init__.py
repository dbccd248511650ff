"""CloudSound event catalog: scheduled radio events and their audio assets."""

__version__ = "0.1.0"
