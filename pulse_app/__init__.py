"""Service layer: configuration, storage, collection and evaluation."""
