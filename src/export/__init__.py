"""
CV document export (PDF).
"""
