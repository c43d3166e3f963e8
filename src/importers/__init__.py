"""
CV data importers (LinkedIn export JSON, PDF/DOCX files).
"""
