"""Domain layer for crawl-result ingestion."""
