"""Boat rides domain - ride package bookings, request screening and staff review"""
