"""Servicios del Core (orquestación de pasos)."""
