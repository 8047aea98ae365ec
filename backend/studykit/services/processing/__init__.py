"""
Processing services: ingestion stages and output validation.

Usage:
    from studykit.services.processing.stages import extract_content_blocks
    from studykit.services.processing.validation import validate_ingestion_result
"""
