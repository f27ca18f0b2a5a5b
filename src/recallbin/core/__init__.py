"""Domain services: storage, enrichment, ingestion and queries."""
