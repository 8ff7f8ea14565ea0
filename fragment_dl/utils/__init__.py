"""
Small helpers shared across the application.
"""
