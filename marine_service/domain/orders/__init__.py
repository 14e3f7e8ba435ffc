"""Orders domain - spare parts orders"""
