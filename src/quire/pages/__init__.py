"""Built-in pages shipped with quire."""
