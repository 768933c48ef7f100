"""
Status API module.

FastAPI app exposing workflow state to a presentation layer.
"""
