"""Appointment booking, rescheduling and cancellation"""
