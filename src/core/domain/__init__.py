"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce procesos, ficheros ni CLI: solo conceptos del provisionado.
"""
