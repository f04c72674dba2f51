"""Acceso a medios externos (imágenes y audio)."""
