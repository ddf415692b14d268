"""
Shared library for the chefcomanda services: hosted database gateway,
change subscriptions, the restaurant state store and business services.
"""
