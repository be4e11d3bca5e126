"""
Test Package Initialization

This package contains all unit and integration tests for the
live interview copilot.

Test Structure:
- test_config.py: Configuration tests
- test_memory.py: Session memory store and interview session tests
- test_events.py: Answer events and EventStream tests
- test_answer_stream.py: Answer streaming orchestration tests
- test_llm.py: Generation clients and interview assistance tests
- test_transcription.py: Transcoding, STT streaming and orchestration tests
- test_api.py: HTTP surface tests

Run tests with:
    pytest tests/ -v
    pytest tests/ -v --cov=nexus
"""
