"""
RentEasy API: rental listings with a monthly rent ledger paid through Stripe.
"""

__version__ = "1.0.0"
