"""Marine Service Center API"""
