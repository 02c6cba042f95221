"""
Services package for the Echo-Audit API.
"""
