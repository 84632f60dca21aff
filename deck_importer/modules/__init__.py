"""Feature modules of the importer."""
