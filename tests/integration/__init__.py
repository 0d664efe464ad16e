"""
Integration tests for the Emojify workflow.

These tests run the real workflow over HTTP against a Flask stub of the
Emojify service and demonstrate:
- Live server lifecycle management
- Assertions on what the service received
- Failure classification end to end
"""
