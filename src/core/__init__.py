"""Core de octolens: dominio, contratos y servicios (sin I/O directo de UI)."""
