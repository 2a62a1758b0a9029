"""
HTTP clients for the server list and Steam Web APIs
"""
