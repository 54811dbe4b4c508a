"""Core: configuración, dominio, errores y el pipeline de provisionado."""
