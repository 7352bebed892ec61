"""Modelos y entidades del dominio.

Aquí viven las estructuras de datos puras (Pydantic v2 / dataclasses) y la
taxonomía de errores. El dominio no conoce HTTP, disco ni CLI.
"""
