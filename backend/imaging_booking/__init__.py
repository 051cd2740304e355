"""
Diagnostic imaging appointment booking backend
"""
