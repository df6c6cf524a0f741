"""Domain layer for walletsync application.

Services live in their own modules; import them from there.
"""
