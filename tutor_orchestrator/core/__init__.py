"""
Core modules for the tutor orchestrator.

This package contains budget accounting, model selection, context assembly,
provider calls and note extraction.
"""
