"""
Faculty Progress Tracker
Blueprint registry.
"""
