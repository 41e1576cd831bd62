"""SQLite catalog source"""
