"""
API routers for the RentEasy API.
"""
