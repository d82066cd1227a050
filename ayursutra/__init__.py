"""AyurSutra: booking API for Ayurvedic therapy clinics"""
