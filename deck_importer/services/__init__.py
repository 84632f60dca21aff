"""External services used by the importer."""
