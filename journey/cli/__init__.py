# ==============================================================================
# CLI Command Modules
# ==============================================================================
"""
Command implementations for the journey CLI, registered in journey.app.
"""
