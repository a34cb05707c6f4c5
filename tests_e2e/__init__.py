"""
End-to-End Test Suite for the Rate Extractor

This package contains end-to-end tests that run the extraction pipeline and
the CLI on PDF files generated during the test, without any mocking. All
tests create real resources and clean up after themselves.

Test Suites:
- test_schedule_extraction: Text layer extraction, repair, probing and CLI commands
"""
