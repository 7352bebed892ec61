"""Servicios del Core: caché de assets, fetcher y búsqueda incremental."""
