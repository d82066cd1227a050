"""In-app notification records"""
