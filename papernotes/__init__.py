"""Paper ingestion, note extraction and question answering."""
