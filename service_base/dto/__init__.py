"""
Response DTOs
"""
