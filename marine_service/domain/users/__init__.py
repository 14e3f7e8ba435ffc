"""Users domain - registration, login and role lookups"""
