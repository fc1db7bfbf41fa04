"""Stiligoroda Django project package."""
