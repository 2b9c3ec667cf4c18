"""
Pydantic схемы API
"""
