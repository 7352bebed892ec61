"""Adaptadores de I/O: cliente HTTP, endpoints de GitHub y caché en disco."""
