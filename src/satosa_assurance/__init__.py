"""
SATOSA micro services for the level of assurance of an authentication.
"""
