"""Neon Inventory - product catalog API with image uploads"""
