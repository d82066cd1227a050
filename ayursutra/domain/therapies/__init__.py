"""Therapy catalog"""
