"""
Бизнес-логика FileDrop
"""
