"""
TicketAgent Assistant Test Suite
================================
Unit and wiring tests for team extraction, session memory, LLM analysis
and the conversation turn.

Usage:
    # Run all tests
    pytest tests/ -v

    # Only the extraction tests
    pytest tests/test_team_extractor.py -v
"""
