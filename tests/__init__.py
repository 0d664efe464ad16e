"""
Test suite for the Emojify Traffic load generator.

This package contains:
- unit/: stages, workflow, config and reporting against scripted fakes
- integration/: the workflow over real HTTP against a Flask stub service
"""
