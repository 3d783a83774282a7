"""Core module - infraestructura compartida del monitor.

Estructura:
- redis/       → Conexión al tier remoto
- cache/       → Cache de dos niveles (remoto + local)
- monitoring/  → Health checks
"""
