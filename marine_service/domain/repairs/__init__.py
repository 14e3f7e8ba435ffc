"""Boat repairs domain - repair bookings, technician workflow and repair costs"""
