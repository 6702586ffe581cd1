"""EcoRide Middleware Package"""
