"""REST API for watchlist screening"""
