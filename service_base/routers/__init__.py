"""
Business endpoint routers
"""
