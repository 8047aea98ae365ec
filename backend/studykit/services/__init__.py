"""Services: LLM transport, ingestion processing and learning sessions."""
