"""Appointments domain - visit booking, time slots and calendar occupancy"""
