"""
StudyKit Test Suite

Test Structure:
    tests/
    ├── conftest.py                      # Shared fixtures and configuration
    └── unit/                            # Unit tests (no network, LLM mocked)
        ├── test_text_utils.py           # JSON recovery
        ├── test_block_normalization.py  # Content normalizer
        ├── test_unit_synthesis.py       # Unit synthesizer
        ├── test_exercise_items.py       # Payload → exercise items
        ├── test_grading.py              # Grading dispatch
        ├── test_session_service.py      # Exercise session state machine
        ├── test_material_ingestion.py   # Batch ingestion pipeline
        ├── test_processing_validation.py
        ├── test_llm_client.py
        └── test_config.py

Running Tests:
    # Run all tests
    pytest backend/tests/ -v

    # Run with coverage
    pytest backend/tests/ --cov=studykit --cov-report=html
"""
