"""Travel Journal: personal travel stories with photos, favourites and search."""

__version__ = "1.0.0"
