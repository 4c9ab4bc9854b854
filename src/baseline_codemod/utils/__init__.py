"""
Utilities: console/logging and filesystem helpers.
"""
