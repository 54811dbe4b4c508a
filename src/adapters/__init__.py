"""Adaptadores: todo lo que toca el sistema (procesos, ficheros, plantillas).

Cada módulo implementa un paso del provisionado sin conocer la CLI.
"""
